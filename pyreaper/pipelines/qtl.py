"""
QTL Pipeline Module

Wraps genotype/trait loading, per-trait marker regression, the permutation
null distribution, bootstrap support and result reporting in one class.
"""

import time
import warnings
import numpy as np
import pandas as pd
from pathlib import Path
from typing import Dict, List, Optional

from ..data.loaders import load_genotype_file, load_traits_file
from ..utils.stats import pvalues, empirical_thresholds, lrs_to_lod, nominal_pvalue
from ..utils.data_types import Dataset, QTLScanResults, TraitSet
from ..association.scan import REAPER_Regression
from ..association.permutation import REAPER_Permutation, PERMUTATION_TESTSIZE
from ..association.bootstrap import REAPER_Bootstrap, BOOTSTRAP_TESTSIZE

MIN_STRAINS = 3


class QTLPipeline:
    """
    High-level pipeline for genome-wide QTL mapping.

    Typical workflow:
        1. Initialize pipeline with output directory
        2. Load a .geno genotype file and a trait table (missing genotypes are imputed)
        3. Run the analysis: marker regression, permutation p-values and
           bootstrap support for every trait
        4. Results are saved to the output directory as tab-separated tables

    Attributes:
        dataset (Dataset): Imputed genotype panel
        traits (TraitSet): Trait vectors aligned to the trait-file strains
        output_dir (Path): Output directory for results
        results (dict): {trait: QTLScanResults}
        bootstrap_counts (dict): {trait: per-locus bootstrap counts}
        thresholds (dict): {trait: {'suggestive': LRS, 'significant': LRS}}

    Example:
        >>> from pyreaper.pipelines.qtl import QTLPipeline
        >>> pipeline = QTLPipeline(output_dir='./my_qtl')
        >>> pipeline.load_data(genotype_file='BXD.geno', traits_file='traits.txt')
        >>> pipeline.run_analysis(n_perms=1000, n_boot=1000, cpu=4)
    """

    def __init__(self, output_dir: str = "./QTL_results", verbose: bool = True):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.verbose = verbose

        self.dataset: Optional[Dataset] = None
        self.traits: Optional[TraitSet] = None

        self.results: Dict[str, QTLScanResults] = {}
        self.bootstrap_counts: Dict[str, np.ndarray] = {}
        self.thresholds: Dict[str, Dict[str, float]] = {}

    def log(self, message: str):
        """Print a progress message unless the pipeline runs quietly"""
        if self.verbose:
            print(message)

    def log_step(self, step_name: str, start_time: Optional[float] = None):
        """Announce a step, or report its elapsed time when ``start_time`` is given"""
        if start_time is not None:
            elapsed = time.time() - start_time
            self.log(f"{step_name} done ({elapsed:.2f} s)")
        else:
            self.log(f"{step_name}...")

    def load_data(self, genotype_file: str, traits_file: str):
        """
        Load the genotype panel and the trait table.

        Missing genotypes are estimated from flanking markers while loading.

        Raises:
            ValueError: If either file cannot be loaded or validated
        """
        step_start = time.time()
        self.log_step("Step 1: Loading genotypes and traits")

        try:
            self.dataset = load_genotype_file(genotype_file)
        except Exception as e:
            raise ValueError(f"Error loading genotype file: {e}") from e
        self.log(f"   Loaded {self.dataset.n_strains} strains x {self.dataset.n_loci} loci "
                 f"on {len(self.dataset.genome)} chromosomes ({self.dataset.cross_type.value})")

        try:
            self.traits = load_traits_file(traits_file)
        except Exception as e:
            raise ValueError(f"Error loading traits file: {e}") from e
        self.log(f"   Loaded {self.traits.n_traits} traits for {len(self.traits.strains)} strains")

        unknown = [s for s in self.traits.strains if s not in set(self.dataset.strains)]
        if unknown:
            raise ValueError(f"Trait strains missing from genotype file: {unknown}")

        self.log_step("Data loading", step_start)

    def run_analysis(self,
                     traits: Optional[List[str]] = None,
                     control: Optional[str] = None,
                     n_perms: int = PERMUTATION_TESTSIZE,
                     n_boot: int = BOOTSTRAP_TESTSIZE,
                     cpu: int = 1,
                     random_seed: Optional[int] = None) -> Dict[str, QTLScanResults]:
        """
        Scan every selected trait and save the per-trait reports.

        Args:
            traits: Trait names to analyze (default: all)
            control: Optional control marker for composite regression
            n_perms: Permutations per trait for the empirical p-values
            n_boot: Bootstrap replicates per trait (0 disables bootstrap)
            cpu: Worker count for permutation and bootstrap
            random_seed: Base seed; each trait and each resampling step draws
                its own stream from it

        Returns:
            {trait: QTLScanResults} with p-values attached
        """
        if self.dataset is None or self.traits is None:
            raise ValueError("Data not loaded. Call load_data() first.")

        self.log_step("Step 2: Running QTL analysis")

        if traits:
            missing = set(traits) - set(self.traits.names)
            if missing:
                self.log(f"   Warning: Traits not found: {sorted(missing)}")
            selected = [t for t in traits if t in self.traits.names]
        else:
            selected = self.traits.names
        if not selected:
            raise ValueError("No valid traits found to analyze.")

        # one child seed per trait, split again into permutation and bootstrap streams
        trait_seeds = np.random.SeedSequence(random_seed).spawn(len(selected))

        summary_rows = []
        for trait_name, trait_seed in zip(selected, trait_seeds):
            perm_seed, boot_seed = trait_seed.spawn(2)
            self.log(f"\nTrait {trait_name}")
            step_start = time.time()

            strains, values = self.traits.observed(trait_name)
            if len(strains) < MIN_STRAINS:
                warnings.warn(
                    f"Trait {trait_name} has {len(strains)} observed strains; skipping"
                )
                continue
            self.log(f"   {len(strains)} strains with observed values")

            qtls = REAPER_Regression(self.dataset, values, strains=strains,
                                     control=control, verbose=self.verbose)
            perms = REAPER_Permutation(self.dataset, values, strains=strains,
                                       n_perms=n_perms, cpu=cpu,
                                       random_seed=perm_seed, verbose=self.verbose)
            scan = QTLScanResults(qtls, pvalues=pvalues([q.lrs for q in qtls], perms))
            self.results[trait_name] = scan
            self.thresholds[trait_name] = empirical_thresholds(perms)
            self.log(f"   Suggestive LRS {self.thresholds[trait_name]['suggestive']:.3f}, "
                     f"significant LRS {self.thresholds[trait_name]['significant']:.3f}")

            if n_boot > 0:
                self.bootstrap_counts[trait_name] = REAPER_Bootstrap(
                    self.dataset, values, strains=strains, control=control,
                    n_boot=n_boot, cpu=cpu, random_seed=boot_seed,
                    verbose=self.verbose,
                )

            summary_rows.append(self._save_trait_results(trait_name))
            self.log_step(f"Trait {trait_name}", step_start)

        if summary_rows:
            summary_df = pd.DataFrame(summary_rows)
            sum_path = self.output_dir / "QTL_summary_by_traits.tsv"
            summary_df.to_csv(sum_path, sep='\t', index=False, float_format='%.3f')
            self.log(f"\nWrote trait summary to {sum_path}")

        return self.results

    def _save_trait_results(self, trait_name: str) -> Dict[str, object]:
        """Internal helper to save tables; returns the trait's summary row"""
        scan = self.results[trait_name]
        thresholds = self.thresholds[trait_name]

        res_file = self.output_dir / f"QTL_{trait_name}_results.tsv"
        scan.to_dataframe(trait_name=trait_name).to_csv(
            res_file, sep='\t', index=False, float_format='%.3f'
        )
        self.log(f"   Saved results to {res_file}")

        if trait_name in self.bootstrap_counts:
            counts = self.bootstrap_counts[trait_name]
            boot_df = pd.DataFrame({
                'Locus': [q.marker.name for q in scan.qtls],
                'Chr': [q.marker.chromosome for q in scan.qtls],
                'cM': [q.marker.centi_morgan for q in scan.qtls],
                'Count': counts,
            })
            boot_df['Frequency'] = counts / max(int(counts.sum()), 1)
            boot_df.to_csv(self.output_dir / f"QTL_{trait_name}_bootstrap.tsv",
                           sep='\t', index=False, float_format='%.3f')

        lrs = scan.lrs
        row = {
            'Trait': trait_name,
            'Suggestive_LRS': thresholds['suggestive'],
            'Significant_LRS': thresholds['significant'],
            'Suggestive_Hits': int(np.sum(lrs >= thresholds['suggestive'])),
            'Significant_Hits': int(np.sum(lrs >= thresholds['significant'])),
        }
        if scan.n_markers:
            best_idx = int(np.argmax(lrs))
            best = scan.qtls[best_idx]
            row.update({
                'Best_Locus': best.marker.name,
                'Best_Chr': best.marker.chromosome,
                'Best_LRS': best.lrs,
                'Best_LOD': float(lrs_to_lod(best.lrs)),
                'Best_pValue': float(scan.pvalues[best_idx]),
                'Best_nominal_pValue': float(nominal_pvalue(best.lrs, df=2 if scan.has_dominance else 1)),
            })
        return row

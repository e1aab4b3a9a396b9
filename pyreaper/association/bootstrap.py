"""
Bootstrap support for the location of the strongest QTL

Each replicate resamples strains with replacement (one index draw shared by
the trait, every locus and the control marker), rescans the genome with the
same model as the observed scan and credits the locus with the highest LRS.
"""

from typing import Optional, Sequence, Union

import numpy as np
from joblib import Parallel, delayed

from ..utils.data_types import Dataset
from .permutation import (
    MAXPERMUTATION,
    partition_trials,
    resolve_workers,
    spawn_generators,
)
from .scan import ScanDesign, as_trait_vector, prepare_scan, run_kernel

BOOTSTRAP_TESTSIZE = 1000


def bootstrap_trial_count(n_boot: int, min_boot: int = BOOTSTRAP_TESTSIZE) -> int:
    """Replicate count clamped to ``[min_boot, MAXPERMUTATION]``"""
    if n_boot <= 0:
        raise ValueError("Number of bootstrap replicates must be positive")
    return min(max(n_boot, min_boot), MAXPERMUTATION)


def _bootstrap_worker(design: ScanDesign,
                      traits: np.ndarray,
                      n_trials: int,
                      rng: np.random.Generator) -> np.ndarray:
    n = len(traits)
    counts = np.zeros(design.n_loci, dtype=np.int64)
    for _ in range(n_trials):
        indices = rng.integers(0, n, size=n)
        b_traits = traits[indices]
        b_geno = np.ascontiguousarray(design.geno[:, indices])
        b_dom = None if design.dominance is None else np.ascontiguousarray(design.dominance[:, indices])
        b_control = None if design.control is None else design.control[indices]
        lrs, _, _ = run_kernel(design.mode, b_traits, b_geno, dominance=b_dom, control=b_control)
        # First locus wins ties; locus 0 if every LRS clamps to zero
        counts[int(np.argmax(lrs))] += 1
    return counts


def REAPER_Bootstrap(dataset: Dataset,
                     traits: Sequence[float],
                     strains: Optional[Sequence[str]] = None,
                     control: Optional[str] = None,
                     n_boot: int = BOOTSTRAP_TESTSIZE,
                     min_boot: int = BOOTSTRAP_TESTSIZE,
                     cpu: int = 1,
                     random_seed: Optional[Union[int, np.random.SeedSequence]] = None,
                     verbose: bool = True) -> np.ndarray:
    """Per-locus counts of being the genome-wide best hit across bootstrap replicates

    Args:
        dataset: Genotype-complete dataset
        traits: Trait values aligned to ``strains``
        strains: Strain names of the trait values (default: all dataset strains)
        control: Optional control marker name (same model as the observed scan)
        n_boot: Requested number of replicates
        min_boot: Lower bound on the number of replicates
        cpu: Number of workers (0 or less for all cores)
        random_seed: Integer seed or SeedSequence for the per-worker generators
        verbose: Print progress information

    Returns:
        Integer array with one count per locus in genome order, summing to the
        number of replicates actually run
    """
    design = prepare_scan(dataset, strains=strains, control=control)
    y = as_trait_vector(traits, design.n_strains, "Trait vector")
    n_test = bootstrap_trial_count(n_boot, min_boot=min_boot)

    n_workers = resolve_workers(cpu, n_test)
    shares = partition_trials(n_test, n_workers)
    rngs = spawn_generators(random_seed, n_workers)

    if verbose:
        print(f"Bootstrap: {n_test} replicates on {n_workers} worker(s)")

    if n_workers == 1:
        parts = [_bootstrap_worker(design, y, shares[0], rngs[0])]
    else:
        parts = Parallel(n_jobs=n_workers, backend='threading')(
            delayed(_bootstrap_worker)(design, y, share, rng)
            for share, rng in zip(shares, rngs)
        )

    return np.sum(parts, axis=0)

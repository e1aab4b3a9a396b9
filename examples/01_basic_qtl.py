#!/usr/bin/env python3
"""
Example 01: Basic QTL Mapping

This example demonstrates the simplest QTL mapping workflow using pyreaper:
marker regression of every trait, genome-wide p-values from 1000 trait
permutations and bootstrap support for the position of the strongest QTL.

Prerequisites:
- BXD.geno: genotype file with @name/@mat/@pat/@type metadata
- traits.txt: tab-separated trait table with a 'Trait' header column
"""

from pyreaper.pipelines.qtl import QTLPipeline

def main():
    print("=" * 70)
    print("EXAMPLE 01: Basic QTL Mapping")
    print("=" * 70)

    # Initialize the pipeline with output directory
    pipeline = QTLPipeline(output_dir='./example01_results')

    # Load genotypes (missing calls are imputed from flanking markers) and traits
    print("\n1. Loading data...")
    pipeline.load_data(
        genotype_file='BXD.geno',
        traits_file='traits.txt'
    )

    # Run marker regression with permutation and bootstrap on 4 workers
    print("\n2. Running QTL analysis...")
    pipeline.run_analysis(
        n_perms=1000,
        n_boot=1000,
        cpu=4,
        random_seed=2024,
    )

    print("\n" + "=" * 70)
    print("Analysis Complete!")
    print("=" * 70)
    print("\nResults saved to: ./example01_results/")
    print("- QTL_<trait>_results.tsv     (LRS, additive effect and pValue per marker)")
    print("- QTL_<trait>_bootstrap.tsv   (bootstrap support per marker)")
    print("- QTL_summary_by_traits.tsv   (best locus and permutation thresholds)")


if __name__ == '__main__':
    main()

#!/usr/bin/env python3
"""
Genome-wide QTL mapping script using the pyreaper pipeline
"""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pyreaper.cli.utils import parse_args, parse_trait_list
from pyreaper.pipelines.qtl import QTLPipeline


def main():
    args = parse_args()

    pipeline = QTLPipeline(output_dir=args.outputdir, verbose=not args.quiet)

    # 1. Load Data
    pipeline.load_data(genotype_file=args.geno, traits_file=args.traits)

    # 2. Run Analysis
    pipeline.run_analysis(
        traits=parse_trait_list(args.select_traits),
        control=args.control,
        n_perms=args.n_permutations,
        n_boot=args.n_bootstrap,
        cpu=args.cpu,
        random_seed=args.seed,
    )


if __name__ == "__main__":
    main()

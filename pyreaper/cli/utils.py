import argparse
from typing import List, Optional


def parse_trait_list(value: Optional[str]) -> Optional[List[str]]:
    """Split a comma-separated trait selection, dropping blanks and duplicates"""
    if not value:
        return None
    selected = []
    for part in value.split(','):
        part = part.strip()
        if part and part not in selected:
            selected.append(part)
    return selected or None


def parse_args():
    """Parse command line arguments for QTL pipeline"""
    parser = argparse.ArgumentParser(
        description="Genome-wide QTL mapping using pyreaper",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # Required arguments
    parser.add_argument("--geno", "-g", required=True,
                       help="Genotype file (.geno format with @name/@mat/@pat/@type metadata)")
    parser.add_argument("--traits", "-t", required=True,
                       help="Trait file (tab-separated, header 'Trait' followed by strain names)")

    # Optional arguments
    parser.add_argument("--control", "-c", default=None,
                       help="Control marker name for composite regression (riset only)")
    parser.add_argument("--outputdir", "-o", default="./QTL_results",
                       help="Output directory")
    parser.add_argument("--select-traits", default=None,
                       help="Comma-separated trait names to analyze (default: all)")

    # Resampling
    parser.add_argument("--n-permutations", type=int, default=1000,
                       help="Permutations per trait for empirical p-values")
    parser.add_argument("--n-bootstrap", type=int, default=1000,
                       help="Bootstrap replicates per trait (0 disables bootstrap)")
    parser.add_argument("--cpu", type=int, default=1,
                       help="Worker count for permutation and bootstrap (0 for all cores)")
    parser.add_argument("--seed", type=int, default=None,
                       help="Random seed for permutation and bootstrap")

    # Output
    parser.add_argument("--quiet", "-q", action='store_true',
                       help="Suppress progress messages")

    args = parser.parse_args()
    if args.n_permutations <= 0:
        parser.error("--n-permutations must be positive")
    if args.n_bootstrap < 0:
        parser.error("--n-bootstrap must be zero or positive")
    return args

#!/usr/bin/env python3
"""
Example 02: Composite Regression with a Control Marker

Uses the function-level API instead of the pipeline. The scan conditions on
the genotype of a control marker, so loci linked to it lose their signal and
secondary QTL elsewhere in the genome stand out.
"""

from pyreaper import (
    load_genotype_file,
    load_traits_file,
    REAPER_Regression,
    REAPER_Permutation,
    pvalues,
)
from pyreaper.utils.data_types import QTLScanResults

def main():
    dataset = load_genotype_file('BXD.geno')
    traits = load_traits_file('traits.txt')

    for name, _ in traits:
        strains, values = traits.observed(name)

        qtls = REAPER_Regression(dataset, values, strains=strains, control='D1Mit1')
        perms = REAPER_Permutation(dataset, values, strains=strains, n_perms=1000, cpu=4)

        scan = QTLScanResults(qtls, pvalues=pvalues([q.lrs for q in qtls], perms))
        df = scan.to_dataframe(trait_name=name)
        print(df.sort_values('LRS', ascending=False).head(5).to_string(index=False))


if __name__ == '__main__':
    main()

"""
pyreaper: genome-wide QTL mapping for recombinant inbred and intercross panels

Marker regression with flanking-marker imputation of missing genotypes,
empirical genome-wide p-values from a permutation null distribution and
bootstrap support for the QTL position. Kernels are compiled with Numba and
resampling is spread over worker threads.
"""

__version__ = "0.1.0"

from .utils.data_types import (
    Genotype,
    CrossType,
    Marker,
    Locus,
    Genome,
    Dataset,
    QTLResult,
    QTLScanResults,
    TraitSet,
)
from .data.loaders import load_genotype_file, load_traits_file
from .association.scan import REAPER_Regression
from .association.permutation import REAPER_Permutation
from .association.bootstrap import REAPER_Bootstrap
from .utils.stats import pvalue, pvalues
from .pipelines.qtl import QTLPipeline

__all__ = [
    'Genotype',
    'CrossType',
    'Marker',
    'Locus',
    'Genome',
    'Dataset',
    'QTLResult',
    'QTLScanResults',
    'TraitSet',
    'load_genotype_file',
    'load_traits_file',
    'REAPER_Regression',
    'REAPER_Permutation',
    'REAPER_Bootstrap',
    'pvalue',
    'pvalues',
    'QTLPipeline',
]

"""
Statistical utilities for empirical QTL significance
"""

import numpy as np
from typing import Dict, Sequence, Union
from scipy import stats

SUGGESTIVE_PVALUE = 0.63
SIGNIFICANT_PVALUE = 0.05


def pvalue(lrs: float, permutations: np.ndarray) -> float:
    """Genome-wide empirical p-value of one LRS

    Args:
        lrs: Observed likelihood ratio statistic
        permutations: Permutation maxima, sorted ascending

    Returns:
        1 - (number of permutation maxima <= lrs) / n, clamped to [0, 1]
    """
    permutations = np.asarray(permutations, dtype=np.float64)
    if len(permutations) == 0:
        raise ValueError("Permutation distribution is empty")
    # Upper bound: first position whose value is greater than lrs
    n_below = np.searchsorted(permutations, lrs, side='right')
    p = 1.0 - n_below / len(permutations)
    return float(min(max(p, 0.0), 1.0))


def pvalues(lrs: Union[Sequence[float], np.ndarray], permutations: np.ndarray) -> np.ndarray:
    """Vectorized ``pvalue`` over an array of LRS values"""
    permutations = np.asarray(permutations, dtype=np.float64)
    if len(permutations) == 0:
        raise ValueError("Permutation distribution is empty")
    n_below = np.searchsorted(permutations, np.asarray(lrs, dtype=np.float64), side='right')
    return np.clip(1.0 - n_below / len(permutations), 0.0, 1.0)


def empirical_thresholds(permutations: np.ndarray) -> Dict[str, float]:
    """Suggestive and significant LRS thresholds from a permutation distribution

    The suggestive threshold is exceeded by chance once per genome scan on
    average (genome-wide p = 0.63), the significant one with p = 0.05.
    """
    permutations = np.asarray(permutations, dtype=np.float64)
    if len(permutations) == 0:
        raise ValueError("Permutation distribution is empty")
    return {
        'suggestive': float(np.quantile(permutations, 1.0 - SUGGESTIVE_PVALUE)),
        'significant': float(np.quantile(permutations, 1.0 - SIGNIFICANT_PVALUE)),
    }


def lrs_to_lod(lrs: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """Convert a likelihood ratio statistic to a LOD score (LRS / 2 ln 10)"""
    return np.asarray(lrs, dtype=np.float64) / (2.0 * np.log(10.0))


def nominal_pvalue(lrs: Union[float, np.ndarray], df: int = 1) -> Union[float, np.ndarray]:
    """Point-wise asymptotic p-value, LRS ~ chi-square with ``df`` degrees of freedom

    ``df`` is 1 for the additive model and 2 for additive + dominance. Unlike
    ``pvalue`` this is not corrected for the genome-wide scan.
    """
    return stats.chi2.sf(np.asarray(lrs, dtype=np.float64), df)

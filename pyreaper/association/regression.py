"""
Closed-form least-squares kernels for single-marker QTL regression

All kernels accumulate sums in one pass and solve the normal equations in
closed form. LRS = n * ln(RSS_baseline / RSS_fitted). A NaN or negative LRS
(degenerate fit, e.g. constant genotype or trait) is clamped to 0 together
with the effect estimates; it never aborts a scan.

The kernels are compiled with Numba. ``error_model='numpy'`` makes division
by zero produce inf/NaN instead of raising, so degenerate fits reach the
clamp. ``nogil=True`` lets thread-based workers run the scans concurrently.
"""

from typing import Tuple

import numba
import numpy as np


@numba.jit(nopython=True, cache=True, nogil=True, error_model='numpy')
def regression_2n(traits: np.ndarray, genotypes: np.ndarray) -> Tuple[float, float]:
    """Regress trait on genotype dosage

    Returns:
        Tuple of (LRS, additive effect)
    """
    sig_y = 0.0
    sig_yy = 0.0
    sig_x = 0.0
    sig_xx = 0.0
    sig_xy = 0.0
    n = float(traits.shape[0])

    for i in range(traits.shape[0]):
        y = traits[i]
        x = genotypes[i]
        sig_y += y
        sig_yy += y * y
        sig_xy += y * x
        sig_x += x
        sig_xx += x * x

    d = sig_xx - sig_x * sig_x / n
    tss = sig_yy - (sig_y * sig_y) / n
    a = (sig_xx * sig_y - sig_x * sig_xy) / (n * d)
    b = (sig_xy - (sig_x * sig_y / n)) / d
    rss = sig_yy + a * (n * a - 2.0 * sig_y) + b * (2.0 * a * sig_x + b * sig_xx - 2.0 * sig_xy)

    lrs = n * np.log(tss / rss)
    if np.isnan(lrs) or lrs < 0.0:
        b = 0.0
        lrs = 0.0
    return lrs, b


@numba.jit(nopython=True, cache=True, nogil=True, error_model='numpy')
def regression_2n_variance(traits: np.ndarray,
                           genotypes: np.ndarray,
                           variance: np.ndarray) -> Tuple[float, float]:
    """Weighted regression of trait on genotype, weights 1/variance per strain

    Returns:
        Tuple of (LRS, additive effect)
    """
    sig_1v = 0.0
    sig_yv = 0.0
    sig_yyv = 0.0
    sig_xv = 0.0
    sig_xxv = 0.0
    sig_xyv = 0.0

    for i in range(traits.shape[0]):
        w = 1.0 / variance[i]
        y = traits[i]
        x = genotypes[i]
        sig_1v += w
        yw = y * w
        sig_yv += yw
        sig_yyv += y * yw
        sig_xyv += yw * x
        xw = x * w
        sig_xv += xw
        sig_xxv += xw * x

    d = sig_xxv - sig_xv * sig_xv / sig_1v
    tss = sig_yyv - (sig_yv * sig_yv) / sig_1v
    a = (sig_xxv * sig_yv - sig_xv * sig_xyv) / (sig_1v * d)
    b = (sig_xyv - (sig_xv * sig_yv / sig_1v)) / d
    rss = sig_yyv + a * (sig_1v * a - 2.0 * sig_yv) + b * (2.0 * a * sig_xv + b * sig_xxv - 2.0 * sig_xyv)

    lrs = float(traits.shape[0]) * np.log(tss / rss)
    if np.isnan(lrs) or lrs < 0.0:
        b = 0.0
        lrs = 0.0
    return lrs, b


@numba.jit(nopython=True, cache=True, nogil=True, error_model='numpy')
def regression_3n(traits: np.ndarray,
                  genotypes: np.ndarray,
                  controls: np.ndarray,
                  diff: bool) -> Tuple[float, float, float]:
    """Regress trait on genotype plus one covariate

    The covariate is either a control marker's dosage (``diff=True``: the
    baseline is the trait regressed on the covariate alone) or, for an
    intercross, the locus's own dominance coefficient (``diff=False``: the
    baseline is the total sum of squares).

    Returns:
        Tuple of (LRS, additive effect, covariate effect)
    """
    sig_c = 0.0
    sig_x = 0.0
    sig_y = 0.0
    sig_cc = 0.0
    sig_xx = 0.0
    sig_yy = 0.0
    sig_xc = 0.0
    sig_cy = 0.0
    sig_xy = 0.0
    n = float(traits.shape[0])

    for i in range(traits.shape[0]):
        c = controls[i]
        x = genotypes[i]
        y = traits[i]
        sig_c += c
        sig_x += x
        sig_y += y
        sig_cc += c * c
        sig_xx += x * x
        sig_yy += y * y
        sig_xc += c * x
        sig_cy += y * c
        sig_xy += y * x

    temp0 = sig_xc * sig_xc - sig_cc * sig_xx
    temp1 = sig_c * sig_xx - sig_x * sig_xc
    temp2 = sig_x * sig_cc - sig_c * sig_xc
    temp3 = sig_x * sig_x - n * sig_xx
    temp4 = n * sig_xc - sig_c * sig_x
    temp5 = sig_c * sig_c - n * sig_cc
    temp6 = temp4 * sig_xc + temp2 * sig_x + temp5 * sig_xx

    betak = (temp0 * sig_y + temp1 * sig_cy + temp2 * sig_xy) / temp6
    betac = (temp1 * sig_y + temp3 * sig_cy + temp4 * sig_xy) / temp6
    betax = (temp2 * sig_y + temp4 * sig_cy + temp5 * sig_xy) / temp6

    ssf = (sig_yy
           + betac * (betac * sig_cc - 2.0 * sig_cy)
           + betax * (betax * sig_xx - 2.0 * sig_xy)
           + 2.0 * betac * betax * sig_xc
           + betak * (n * betak + 2.0 * betac * sig_c + 2.0 * betax * sig_x - 2.0 * sig_y))

    if diff:
        d = sig_cc - sig_c * sig_c / n
        a = (sig_cc * sig_y - sig_c * sig_cy) / (n * d)
        b = (sig_cy - (sig_c * sig_y / n)) / d
        ssr = sig_yy + a * (n * a - 2.0 * sig_y) + b * (2.0 * a * sig_c + b * sig_cc - 2.0 * sig_cy)
    else:
        ssr = sig_yy - (sig_y * sig_y) / n

    lrs = n * np.log(ssr / ssf)
    if np.isnan(lrs) or lrs < 0.0:
        # Both coefficients are reset even though callers with a control
        # marker only report betax.
        betax = 0.0
        betac = 0.0
        lrs = 0.0
    return lrs, betax, betac


@numba.jit(nopython=True, cache=True, nogil=True)
def scan_2n(traits: np.ndarray, geno: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Single-covariate regression at every row of ``geno`` (n_loci × n_strains)"""
    n_loci = geno.shape[0]
    lrs = np.zeros(n_loci, dtype=np.float64)
    additive = np.zeros(n_loci, dtype=np.float64)
    for j in range(n_loci):
        lrs_j, additive_j = regression_2n(traits, geno[j])
        lrs[j] = lrs_j
        additive[j] = additive_j
    return lrs, additive


@numba.jit(nopython=True, cache=True, nogil=True)
def scan_2n_variance(traits: np.ndarray, geno: np.ndarray,
                     variance: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    n_loci = geno.shape[0]
    lrs = np.zeros(n_loci, dtype=np.float64)
    additive = np.zeros(n_loci, dtype=np.float64)
    for j in range(n_loci):
        lrs_j, additive_j = regression_2n_variance(traits, geno[j], variance)
        lrs[j] = lrs_j
        additive[j] = additive_j
    return lrs, additive


@numba.jit(nopython=True, cache=True, nogil=True)
def scan_3n_dominance(traits: np.ndarray, geno: np.ndarray,
                      dominance: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Additive + dominance model with each locus's own dominance coefficients"""
    n_loci = geno.shape[0]
    lrs = np.zeros(n_loci, dtype=np.float64)
    additive = np.zeros(n_loci, dtype=np.float64)
    dom = np.zeros(n_loci, dtype=np.float64)
    for j in range(n_loci):
        lrs_j, additive_j, dom_j = regression_3n(traits, geno[j], dominance[j], False)
        lrs[j] = lrs_j
        additive[j] = additive_j
        dom[j] = dom_j
    return lrs, additive, dom


@numba.jit(nopython=True, cache=True, nogil=True)
def scan_3n_control(traits: np.ndarray, geno: np.ndarray,
                    control: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Composite regression against one control marker at every locus"""
    n_loci = geno.shape[0]
    lrs = np.zeros(n_loci, dtype=np.float64)
    additive = np.zeros(n_loci, dtype=np.float64)
    for j in range(n_loci):
        lrs_j, additive_j, _ = regression_3n(traits, geno[j], control, True)
        lrs[j] = lrs_j
        additive[j] = additive_j
    return lrs, additive


@numba.jit(nopython=True, cache=True, nogil=True)
def max_lrs_2n(traits: np.ndarray, geno: np.ndarray) -> float:
    """Genome-wide maximum single-covariate LRS (0.0 if every locus clamps)"""
    lrs_max = 0.0
    for j in range(geno.shape[0]):
        lrs, _ = regression_2n(traits, geno[j])
        if lrs > lrs_max:
            lrs_max = lrs
    return lrs_max

import numpy as np
import pytest
from scipy import stats

from pyreaper.association import regression


def _random_design(n: int = 40, seed: int = 3):
    rng = np.random.default_rng(seed)
    x = rng.choice([-1.0, 1.0], size=n)
    c = rng.choice([-1.0, 0.0, 1.0], size=n)
    y = 0.8 * x - 0.5 * c + rng.normal(scale=1.0, size=n)
    return y, x, c


def _rss(y: np.ndarray, design: np.ndarray) -> float:
    beta, *_ = np.linalg.lstsq(design, y, rcond=None)
    resid = y - design @ beta
    return float(resid @ resid)


def test_regression_2n_perfect_fit_is_unbounded() -> None:
    y = np.array([1.0, 1.0, 5.0, 5.0])
    x = np.array([-1.0, -1.0, 1.0, 1.0])

    lrs, additive = regression.regression_2n(y, x)

    assert lrs > 1e6
    assert additive == pytest.approx(2.0)


def test_regression_2n_constant_trait_clamps_to_zero() -> None:
    y = np.full(4, 5.0)
    x = np.array([-1.0, -1.0, 1.0, 1.0])

    lrs, additive = regression.regression_2n(y, x)

    assert lrs == 0.0
    assert additive == 0.0


def test_regression_2n_constant_genotype_clamps_to_zero() -> None:
    y = np.array([1.0, 2.0, 3.0, 4.0])
    x = np.ones(4)

    assert regression.regression_2n(y, x) == (0.0, 0.0)


def test_regression_2n_matches_ordinary_least_squares() -> None:
    y, x, _ = _random_design()

    lrs, additive = regression.regression_2n(y, x)

    fit = stats.linregress(x, y)
    n = len(y)
    assert additive == pytest.approx(fit.slope, rel=1e-9)
    assert lrs == pytest.approx(-n * np.log(1.0 - fit.rvalue ** 2), rel=1e-8)


def test_regression_2n_variance_with_unit_weights_matches_unweighted() -> None:
    y, x, _ = _random_design()

    weighted = regression.regression_2n_variance(y, x, np.ones_like(y))
    plain = regression.regression_2n(y, x)

    assert weighted[0] == pytest.approx(plain[0], rel=1e-10)
    assert weighted[1] == pytest.approx(plain[1], rel=1e-10)


def test_regression_2n_variance_matches_weighted_least_squares() -> None:
    y, x, _ = _random_design(seed=11)
    variance = np.linspace(0.5, 2.0, len(y))
    w = 1.0 / variance

    lrs, additive = regression.regression_2n_variance(y, x, variance)

    sw = np.sqrt(w)
    design = np.column_stack([np.ones_like(x), x])
    beta, *_ = np.linalg.lstsq(design * sw[:, None], y * sw, rcond=None)
    rss = float(np.sum(w * (y - design @ beta) ** 2))
    y_bar = np.sum(w * y) / np.sum(w)
    tss = float(np.sum(w * (y - y_bar) ** 2))

    assert additive == pytest.approx(beta[1], rel=1e-9)
    assert lrs == pytest.approx(len(y) * np.log(tss / rss), rel=1e-8)


def test_regression_3n_against_total_sum_of_squares() -> None:
    y, x, c = _random_design()
    n = len(y)

    lrs, betax, betac = regression.regression_3n(y, x, c, False)

    design = np.column_stack([np.ones(n), x, c])
    beta, *_ = np.linalg.lstsq(design, y, rcond=None)
    tss = float(np.sum((y - y.mean()) ** 2))
    assert betax == pytest.approx(beta[1], rel=1e-9)
    assert betac == pytest.approx(beta[2], rel=1e-9)
    assert lrs == pytest.approx(n * np.log(tss / _rss(y, design)), rel=1e-8)


def test_regression_3n_against_covariate_only_baseline() -> None:
    y, x, c = _random_design(seed=5)
    n = len(y)

    lrs, betax, _ = regression.regression_3n(y, x, c, True)

    full = np.column_stack([np.ones(n), x, c])
    reduced = np.column_stack([np.ones(n), c])
    beta, *_ = np.linalg.lstsq(full, y, rcond=None)
    assert betax == pytest.approx(beta[1], rel=1e-9)
    assert lrs == pytest.approx(n * np.log(_rss(y, reduced) / _rss(y, full)), rel=1e-8)


def test_regression_3n_covariate_equal_to_genotype_clamps() -> None:
    y, x, _ = _random_design()

    lrs, betax, betac = regression.regression_3n(y, x, x.copy(), True)

    assert lrs == 0.0
    assert betax == 0.0
    assert betac == 0.0


def test_scan_kernels_match_single_locus_calls() -> None:
    rng = np.random.default_rng(21)
    y = rng.normal(size=30)
    geno = rng.choice([-1.0, 1.0], size=(8, 30))
    dominance = rng.choice([0.0, 1.0], size=(8, 30))

    lrs, additive = regression.scan_2n(y, geno)
    lrs_d, additive_d, dom = regression.scan_3n_dominance(y, geno, dominance)
    lrs_c, additive_c = regression.scan_3n_control(y, geno, geno[0].copy())

    for j in range(geno.shape[0]):
        assert (lrs[j], additive[j]) == regression.regression_2n(y, geno[j])
        assert (lrs_d[j], additive_d[j], dom[j]) == regression.regression_3n(y, geno[j], dominance[j], False)
        assert lrs_c[j] == regression.regression_3n(y, geno[j], geno[0], True)[0]
    assert lrs_c[0] == 0.0
    assert regression.max_lrs_2n(y, geno) == pytest.approx(lrs.max())
    assert np.all(lrs >= 0.0)


def test_max_lrs_is_zero_when_every_locus_clamps() -> None:
    y = np.full(6, 2.0)
    geno = np.array([[-1.0, 1.0, -1.0, 1.0, -1.0, 1.0]] * 3)
    assert regression.max_lrs_2n(y, geno) == 0.0

import numpy as np
import pytest
from scipy import stats

from pyreaper.utils import stats as stats_utils


def test_pvalue_counts_permutations_at_or_below() -> None:
    perms = np.array([1.0, 2.0, 3.0, 4.0])

    assert stats_utils.pvalue(0.5, perms) == 1.0
    assert stats_utils.pvalue(2.0, perms) == 0.5
    assert stats_utils.pvalue(2.5, perms) == 0.5
    assert stats_utils.pvalue(4.0, perms) == 0.0
    assert stats_utils.pvalue(10.0, perms) == 0.0


def test_pvalue_is_monotone_and_bounded() -> None:
    perms = np.sort(np.random.default_rng(0).chisquare(3, size=500))
    grid = np.linspace(-1.0, perms.max() + 1.0, 200)

    values = stats_utils.pvalues(grid, perms)

    assert np.all(values >= 0.0) and np.all(values <= 1.0)
    assert np.all(np.diff(values) <= 0.0)
    np.testing.assert_allclose(values, [stats_utils.pvalue(g, perms) for g in grid])


def test_pvalue_rejects_empty_distribution() -> None:
    with pytest.raises(ValueError):
        stats_utils.pvalue(1.0, np.array([]))
    with pytest.raises(ValueError):
        stats_utils.pvalues([1.0], np.array([]))


def test_empirical_thresholds_use_permutation_quantiles() -> None:
    perms = np.arange(1.0, 101.0)

    thresholds = stats_utils.empirical_thresholds(perms)

    assert thresholds['suggestive'] == pytest.approx(np.quantile(perms, 0.37))
    assert thresholds['significant'] == pytest.approx(np.quantile(perms, 0.95))
    assert thresholds['significant'] > thresholds['suggestive']


def test_lod_and_nominal_pvalue_conversions() -> None:
    assert stats_utils.lrs_to_lod(2.0 * np.log(10.0)) == pytest.approx(1.0)
    assert stats_utils.nominal_pvalue(stats.chi2.ppf(0.95, 1), df=1) == pytest.approx(0.05)
    assert stats_utils.nominal_pvalue(stats.chi2.ppf(0.99, 2), df=2) == pytest.approx(0.01)

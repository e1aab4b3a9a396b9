import numpy as np
import pytest

from pyreaper.association import bootstrap
from pyreaper.association.bootstrap import REAPER_Bootstrap
from pyreaper.association.permutation import MAXPERMUTATION
from pyreaper.utils.data_types import CrossType, Dataset, Genotype, Locus, Marker

N_STRAINS = 24


def _build_dataset(cross_type: CrossType = CrossType.RISET) -> Dataset:
    alphabet = [Genotype.MAT, Genotype.PAT] if cross_type is CrossType.RISET else [
        Genotype.MAT, Genotype.HET, Genotype.PAT
    ]
    ds = Dataset([f"S{i}" for i in range(N_STRAINS)], cross_type=cross_type)
    for j in range(6):
        genotypes = [alphabet[(i // (j + 1)) % len(alphabet)] for i in range(N_STRAINS)]
        ds.push_locus("1", Locus.from_genotypes(Marker(f"m{j}", 10.0 * j, chromosome="1"),
                                                genotypes, dominance=ds.dominance))
    return ds


def _qtl_trait(ds: Dataset, locus_idx: int, seed: int = 0) -> np.ndarray:
    x = ds.genome.dosage_matrix()[locus_idx]
    return 3.0 * x + np.random.default_rng(seed).normal(scale=0.1, size=N_STRAINS)


def test_bootstrap_trial_count_clamps() -> None:
    assert bootstrap.bootstrap_trial_count(5) == bootstrap.BOOTSTRAP_TESTSIZE
    assert bootstrap.bootstrap_trial_count(5000) == 5000
    assert bootstrap.bootstrap_trial_count(MAXPERMUTATION * 2) == MAXPERMUTATION
    assert bootstrap.bootstrap_trial_count(5, min_boot=1) == 5
    with pytest.raises(ValueError):
        bootstrap.bootstrap_trial_count(0)


def test_bootstrap_counts_sum_to_replicates() -> None:
    ds = _build_dataset()
    y = _qtl_trait(ds, 2)

    counts = REAPER_Bootstrap(ds, y, n_boot=10, random_seed=1, verbose=False)

    assert counts.shape == (ds.n_loci,)
    assert counts.sum() == bootstrap.BOOTSTRAP_TESTSIZE


@pytest.mark.parametrize("cpu", [1, 3, 4])
def test_bootstrap_concentrates_on_true_locus(cpu: int) -> None:
    ds = _build_dataset()
    y = _qtl_trait(ds, 3)

    counts = REAPER_Bootstrap(ds, y, n_boot=200, min_boot=1, cpu=cpu, random_seed=7, verbose=False)

    assert counts.sum() == 200
    assert int(np.argmax(counts)) == 3
    assert counts[3] >= 0.9 * 200


def test_bootstrap_is_reproducible_with_seed() -> None:
    ds = _build_dataset()
    y = np.random.default_rng(3).normal(size=N_STRAINS)

    a = REAPER_Bootstrap(ds, y, n_boot=100, min_boot=1, cpu=2, random_seed=11, verbose=False)
    b = REAPER_Bootstrap(ds, y, n_boot=100, min_boot=1, cpu=2, random_seed=11, verbose=False)

    np.testing.assert_array_equal(a, b)


def test_bootstrap_follows_scan_model() -> None:
    intercross = _build_dataset(CrossType.INTERCROSS)
    riset = _build_dataset()

    dom_counts = REAPER_Bootstrap(intercross, _qtl_trait(intercross, 1), n_boot=50, min_boot=1,
                                  random_seed=0, verbose=False)
    ctl_counts = REAPER_Bootstrap(riset, _qtl_trait(riset, 4), control="m0", n_boot=50, min_boot=1,
                                  random_seed=0, verbose=False)

    assert dom_counts.sum() == 50
    assert ctl_counts.sum() == 50

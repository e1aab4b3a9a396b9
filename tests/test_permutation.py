import multiprocessing

import numpy as np
import pytest

from pyreaper.association import permutation
from pyreaper.association.permutation import REAPER_Permutation
from pyreaper.utils.data_types import CrossType, Dataset, Genotype, Locus, Marker

N_STRAINS = 16


def _build_dataset(cross_type: CrossType = CrossType.RISET) -> Dataset:
    rng = np.random.default_rng(123)
    alphabet = [Genotype.MAT, Genotype.PAT] if cross_type is CrossType.RISET else [
        Genotype.MAT, Genotype.HET, Genotype.PAT
    ]
    ds = Dataset([f"S{i}" for i in range(N_STRAINS)], cross_type=cross_type)
    for j in range(10):
        genotypes = [alphabet[(i + j) % len(alphabet)] for i in range(N_STRAINS)]
        # keep a few random flips so loci are not exact copies of each other
        for i in rng.choice(N_STRAINS, size=3, replace=False):
            genotypes[i] = alphabet[0]
        chrom = "1" if j < 5 else "2"
        ds.push_locus(chrom, Locus.from_genotypes(Marker(f"m{j}", 5.0 * j, chromosome=chrom),
                                                  genotypes, dominance=ds.dominance))
    return ds


@pytest.mark.parametrize("n_workers", [1, 2, 3, 4, 5, 6, 7, 8])
def test_partition_trials_sums_and_balances(n_workers: int) -> None:
    shares = permutation.partition_trials(1000, n_workers)

    assert len(shares) == n_workers
    assert sum(shares) == 1000
    assert max(shares) - min(shares) <= 1


def test_partition_trials_remainder_goes_to_first_workers() -> None:
    assert permutation.partition_trials(1000, 7) == [143] * 6 + [142]
    assert permutation.partition_trials(1001, 8) == [126] + [125] * 7
    with pytest.raises(ValueError):
        permutation.partition_trials(10, 0)


def test_resolve_workers() -> None:
    assert permutation.resolve_workers(4, 1000) == 4
    assert permutation.resolve_workers(16, 3) == 3
    assert permutation.resolve_workers(0, 10**6) == multiprocessing.cpu_count()


def test_check_trial_count_caps_and_rejects() -> None:
    assert permutation.check_trial_count(500, "permutations") == 500
    with pytest.warns(UserWarning):
        assert permutation.check_trial_count(permutation.MAXPERMUTATION + 1, "permutations") == permutation.MAXPERMUTATION
    with pytest.raises(ValueError):
        permutation.check_trial_count(0, "permutations")


@pytest.mark.parametrize("cpu", [1, 2, 3, 4, 5, 6, 7, 8])
def test_permutation_length_and_order(cpu: int) -> None:
    ds = _build_dataset()
    y = np.random.default_rng(cpu).normal(size=N_STRAINS)

    perms = REAPER_Permutation(ds, y, n_perms=1000, cpu=cpu, random_seed=1, verbose=False)

    assert perms.shape == (1000,)
    assert np.all(np.diff(perms) >= 0.0)
    assert np.all(perms >= 0.0)


def test_permutation_non_divisible_trial_count() -> None:
    ds = _build_dataset()
    y = np.random.default_rng(0).normal(size=N_STRAINS)

    perms = REAPER_Permutation(ds, y, n_perms=1001, cpu=7, random_seed=3, verbose=False)

    assert len(perms) == 1001


def test_permutation_is_reproducible_with_seed() -> None:
    ds = _build_dataset()
    y = np.random.default_rng(9).normal(size=N_STRAINS)

    a = REAPER_Permutation(ds, y, n_perms=200, cpu=3, random_seed=42, verbose=False)
    b = REAPER_Permutation(ds, y, n_perms=200, cpu=3, random_seed=42, verbose=False)
    c = REAPER_Permutation(ds, y, n_perms=200, cpu=3, random_seed=43, verbose=False)

    np.testing.assert_array_equal(a, b)
    assert not np.array_equal(a, c)


def test_permutation_does_not_modify_trait_vector() -> None:
    ds = _build_dataset()
    y = np.random.default_rng(2).normal(size=N_STRAINS)
    original = y.copy()

    REAPER_Permutation(ds, y, n_perms=50, cpu=2, random_seed=0, verbose=False)

    np.testing.assert_array_equal(y, original)


def test_permutation_uses_additive_model_for_intercross() -> None:
    ds = _build_dataset(CrossType.INTERCROSS)
    y = np.random.default_rng(5).normal(size=N_STRAINS)

    perms = REAPER_Permutation(ds, y, n_perms=100, cpu=2, random_seed=0, verbose=False)

    assert len(perms) == 100


def test_spawn_generators_accepts_seed_sequence() -> None:
    from_int = permutation.spawn_generators(4, 2)
    from_seq = permutation.spawn_generators(np.random.SeedSequence(4), 2)

    draws_int = [rng.random(3) for rng in from_int]
    draws_seq = [rng.random(3) for rng in from_seq]

    np.testing.assert_array_equal(draws_int[0], draws_seq[0])
    np.testing.assert_array_equal(draws_int[1], draws_seq[1])
    assert not np.array_equal(draws_int[0], draws_int[1])

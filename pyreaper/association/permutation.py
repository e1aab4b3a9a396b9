"""
Permutation null distribution of the genome-wide maximum LRS

Trials are split across workers with ``joblib`` (threading backend; the
Numba kernels release the GIL). Each worker owns a private copy of the trait
vector and a ``numpy.random.Generator`` spawned from one ``SeedSequence``, so
streams are independent and a fixed seed with a fixed worker count
reproduces the same values. The partial results are concatenated and sorted
once after all workers finish.
"""

import multiprocessing
import warnings
from typing import List, Optional, Sequence, Union

import numpy as np
from joblib import Parallel, delayed

from ..utils.data_types import Dataset
from .regression import max_lrs_2n
from .scan import as_trait_vector

PERMUTATION_TESTSIZE = 1000
MAXPERMUTATION = 1000000


def resolve_workers(cpu: int, n_trials: int) -> int:
    """Number of workers to use; ``cpu <= 0`` means all cores, never more than trials"""
    if cpu <= 0:
        cpu = multiprocessing.cpu_count()
    return max(1, min(cpu, n_trials))


def partition_trials(n_trials: int, n_workers: int) -> List[int]:
    """Trial counts per worker

    The remainder of ``n_trials / n_workers`` goes one trial each to the first
    workers, so the counts differ by at most one and always sum to ``n_trials``.
    """
    if n_workers <= 0:
        raise ValueError("Number of workers must be positive")
    base, extra = divmod(n_trials, n_workers)
    return [base + 1 if w < extra else base for w in range(n_workers)]


def spawn_generators(random_seed: Optional[Union[int, np.random.SeedSequence]],
                     n_workers: int) -> List[np.random.Generator]:
    """One independent generator per worker, from an integer seed or an existing ``SeedSequence``"""
    if isinstance(random_seed, np.random.SeedSequence):
        seed_seq = random_seed
    else:
        seed_seq = np.random.SeedSequence(random_seed)
    return [np.random.default_rng(child) for child in seed_seq.spawn(n_workers)]


def check_trial_count(n_trials: int, label: str) -> int:
    if n_trials <= 0:
        raise ValueError(f"Number of {label} must be positive")
    if n_trials > MAXPERMUTATION:
        warnings.warn(f"{n_trials} {label} requested; capping at {MAXPERMUTATION}")
        return MAXPERMUTATION
    return n_trials


def _permutation_worker(traits: np.ndarray,
                        geno: np.ndarray,
                        n_trials: int,
                        rng: np.random.Generator) -> np.ndarray:
    p_traits = traits.copy()
    maxima = np.empty(n_trials, dtype=np.float64)
    for t in range(n_trials):
        rng.shuffle(p_traits)
        maxima[t] = max_lrs_2n(p_traits, geno)
    return maxima


def REAPER_Permutation(dataset: Dataset,
                       traits: Sequence[float],
                       strains: Optional[Sequence[str]] = None,
                       n_perms: int = PERMUTATION_TESTSIZE,
                       cpu: int = 1,
                       random_seed: Optional[Union[int, np.random.SeedSequence]] = None,
                       verbose: bool = True) -> np.ndarray:
    """Sorted genome-wide maximum LRS over ``n_perms`` trait shuffles

    Permutation always uses the genotype-only model, whatever the cross type
    or control marker used for the observed scan.

    Args:
        dataset: Genotype-complete dataset
        traits: Trait values aligned to ``strains``
        strains: Strain names of the trait values (default: all dataset strains)
        n_perms: Number of permutations (capped at MAXPERMUTATION)
        cpu: Number of workers (0 or less for all cores)
        random_seed: Integer seed or SeedSequence for the per-worker generators
        verbose: Print progress information

    Returns:
        Array of length ``n_perms``, sorted ascending
    """
    n_perms = check_trial_count(n_perms, "permutations")
    strain_ixs = dataset.strain_indices(strains)
    dataset.require_complete()
    geno = dataset.genome.dosage_matrix(strain_ixs)
    y = as_trait_vector(traits, len(strain_ixs), "Trait vector")

    n_workers = resolve_workers(cpu, n_perms)
    shares = partition_trials(n_perms, n_workers)
    rngs = spawn_generators(random_seed, n_workers)

    if verbose:
        print(f"Permutation test: {n_perms} shuffles on {n_workers} worker(s)")

    if n_workers == 1:
        parts = [_permutation_worker(y, geno, shares[0], rngs[0])]
    else:
        parts = Parallel(n_jobs=n_workers, backend='threading')(
            delayed(_permutation_worker)(y, geno, share, rng)
            for share, rng in zip(shares, rngs)
        )

    lrs_vec = np.concatenate(parts)
    lrs_vec.sort()
    return lrs_vec

"""
Flanking-marker imputation of missing genotypes

Each run of missing genotypes for a strain is replaced by the expected dosage
(and dominance coefficient for intercross data) conditional on the genotypes
of the nearest known markers on either side. Map distances are converted to
recombination fractions with the Haldane mapping function. Chromosomes are
independent of each other.
"""

import math
from dataclasses import dataclass
from functools import reduce
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

import numpy as np

from ..utils.data_types import Genome, Genotype, Locus
from ..utils.errors import ImputationInvariantError

MAT, HET, PAT, UNK = Genotype.MAT, Genotype.HET, Genotype.PAT, Genotype.UNK


@dataclass(frozen=True)
class UnknownIntervalState:
    """Fold state for missing-run detection

    open_starts: per strain, the index where the currently open run began
    closed: per strain, the ``[start, end)`` ranges closed so far
    """

    open_starts: Tuple[object, ...]
    closed: Tuple[Tuple[range, ...], ...]

    @classmethod
    def empty(cls, n_strains: int) -> "UnknownIntervalState":
        return cls(open_starts=(None,) * n_strains, closed=((),) * n_strains)

    @property
    def intervals(self) -> List[List[range]]:
        return [list(ranges) for ranges in self.closed]


def step_unknown_intervals(state: UnknownIntervalState,
                           step: Tuple[int, np.ndarray]) -> UnknownIntervalState:
    """Advance the run detector by one locus

    ``step`` is ``(locus_index, missing)`` where ``missing`` flags, per strain,
    whether the genotype at that locus is unknown. A run closes at the first
    known index after it, which becomes the exclusive end of the range.
    """
    locus_idx, missing = step
    open_starts = list(state.open_starts)
    closed = list(state.closed)
    for strain_idx, is_missing in enumerate(missing):
        start = open_starts[strain_idx]
        if is_missing:
            if start is None:
                open_starts[strain_idx] = locus_idx
        elif start is not None:
            closed[strain_idx] = closed[strain_idx] + (range(start, locus_idx),)
            open_starts[strain_idx] = None
    return UnknownIntervalState(open_starts=tuple(open_starts), closed=tuple(closed))


def find_unknown_intervals(loci: Sequence[Locus]) -> List[List[range]]:
    """Missing-genotype runs per strain for one chromosome

    Runs still open after the last locus are dropped; boundary fix-up
    guarantees there are none.
    """
    if not loci:
        return []
    steps: Iterable[Tuple[int, np.ndarray]] = (
        (idx, locus.missing_mask()) for idx, locus in enumerate(loci)
    )
    state = reduce(step_unknown_intervals, steps, UnknownIntervalState.empty(loci[0].n_strains))
    return state.intervals


def fix_chromosome_ends(loci: Sequence[Locus]) -> None:
    """Set unknown genotypes on the first and last locus to heterozygous / 0.0"""
    if not loci:
        return
    for locus in (loci[0], loci[-1]):
        mask = locus.missing_mask()
        if mask.any():
            locus.genotypes[mask] = HET
            locus.dosages[mask] = HET.dosage


def haldane(distance: float) -> float:
    """Recombination fraction for a map distance in Morgans"""
    return (1.0 - math.exp(-2.0 * distance)) / 2.0


@dataclass(frozen=True)
class FlankingProbabilities:
    """Conditional crossover terms for a locus between two known markers"""

    r0: float
    r1: float
    r2: float
    r3: float
    f0: float

    @classmethod
    def between(cls, cm_prev: float, cm: float, cm_next: float) -> "FlankingProbabilities":
        f1 = haldane((cm - cm_prev) / 100.0)
        f2 = haldane((cm_next - cm) / 100.0)
        f0 = haldane((cm_next - cm_prev) / 100.0)
        if f0 == 0.0:
            # Flanking markers share a position: no crossover between them
            return cls(r0=1.0, r1=0.0, r2=0.0, r3=0.0, f0=0.0)
        return cls(
            r0=(1.0 - f1) * (1.0 - f2) / (1.0 - f0),
            r1=f1 * (1.0 - f2) / f0,
            r2=f2 * (1.0 - f1) / f0,
            r3=f1 * f2 / (1.0 - f0),
            f0=f0,
        )


def _het_het_dominance(p: FlankingProbabilities) -> float:
    w = ((1.0 - p.f0) * (1.0 - p.f0)) / (1.0 - 2.0 * p.f0 * (1.0 - p.f0))
    return 1.0 - 2.0 * w * p.r0 * p.r3 - 2.0 * (1.0 - w) * p.r1 * p.r2


# Keyed by (previous genotype, next genotype)
_DOSAGE_RULES: Dict[Tuple[Genotype, Genotype], Callable[[FlankingProbabilities], float]] = {
    (MAT, MAT): lambda p: 1.0 - 2.0 * p.r0,
    (HET, MAT): lambda p: 1.0 - p.r0 - p.r1,
    (PAT, MAT): lambda p: 1.0 - 2.0 * p.r1,
    (MAT, HET): lambda p: p.r1 - p.r0,
    (HET, HET): lambda p: 0.0,
    (PAT, HET): lambda p: p.r0 - p.r1,
    (MAT, PAT): lambda p: 2.0 * p.r1 - 1.0,
    (HET, PAT): lambda p: p.r0 + p.r1 - 1.0,
    (PAT, PAT): lambda p: 2.0 * p.r0 - 1.0,
}

_DOMINANCE_RULES: Dict[Tuple[Genotype, Genotype], Callable[[FlankingProbabilities], float]] = {
    (MAT, MAT): lambda p: 2.0 * p.r0 * p.r3,
    (HET, MAT): lambda p: p.r1 * (p.r2 + p.r3),
    (PAT, MAT): lambda p: 2.0 * p.r1 * p.r2,
    (MAT, HET): lambda p: p.r1 * p.r0 + p.r2 * p.r3,
    (HET, HET): _het_het_dominance,
    (PAT, HET): lambda p: p.r0 * p.r1 + p.r2 * p.r3,
    (MAT, PAT): lambda p: 2.0 * p.r1 * p.r2,
    (HET, PAT): lambda p: p.r1 * (p.r2 + p.r3),
    (PAT, PAT): lambda p: 2.0 * p.r1 * p.r3,
}


def _flank_key(prev: Locus, next_: Locus, strain_idx: int) -> Tuple[Genotype, Genotype]:
    key = (prev.genotype(strain_idx), next_.genotype(strain_idx))
    if UNK in key:
        raise ImputationInvariantError(
            f"Strain {strain_idx}: flanking genotype between {prev.marker.name} and "
            f"{next_.marker.name} is unknown"
        )
    return key


def expected_dosage(prev_genotype: Genotype, next_genotype: Genotype,
                    probs: FlankingProbabilities) -> float:
    try:
        rule = _DOSAGE_RULES[(Genotype(prev_genotype), Genotype(next_genotype))]
    except KeyError:
        raise ImputationInvariantError(
            f"No dosage rule for flanking genotypes {prev_genotype!r}/{next_genotype!r}"
        ) from None
    return rule(probs)


def expected_dominance(prev_genotype: Genotype, next_genotype: Genotype,
                       probs: FlankingProbabilities) -> float:
    try:
        rule = _DOMINANCE_RULES[(Genotype(prev_genotype), Genotype(next_genotype))]
    except KeyError:
        raise ImputationInvariantError(
            f"No dominance rule for flanking genotypes {prev_genotype!r}/{next_genotype!r}"
        ) from None
    return rule(probs)


def estimate_unknown_genotypes(loci: Sequence[Locus],
                               intervals: Sequence[Sequence[range]],
                               dominance: bool) -> None:
    """Write estimated dosages (and dominance) into every run in ``intervals``"""
    if dominance:
        for locus in loci:
            if locus.dominance is None:
                raise ValueError(
                    f"Intercross locus {locus.marker.name} is missing dominance coefficients"
                )
    for strain_idx, ranges in enumerate(intervals):
        for run in ranges:
            if run.start == 0 or run.stop >= len(loci):
                raise ImputationInvariantError(
                    f"Strain {strain_idx}: missing run {run.start}..{run.stop} has no flanking marker"
                )
            prev = loci[run.start - 1]
            next_ = loci[run.stop]
            key = _flank_key(prev, next_, strain_idx)
            for locus_idx in run:
                locus = loci[locus_idx]
                probs = FlankingProbabilities.between(prev.cm, locus.cm, next_.cm)
                if dominance:
                    locus.dominance[strain_idx] = expected_dominance(*key, probs)
                locus.dosages[strain_idx] = expected_dosage(*key, probs)


def impute_chromosome(loci: Sequence[Locus], dominance: bool = False) -> None:
    """Boundary fix-up, run detection and estimation for one chromosome, in place"""
    fix_chromosome_ends(loci)
    intervals = find_unknown_intervals(loci)
    estimate_unknown_genotypes(loci, intervals, dominance)


def impute_genome(genome: Genome, dominance: bool = False) -> None:
    for _, loci in genome:
        impute_chromosome(loci, dominance=dominance)

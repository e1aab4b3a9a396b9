"""
Core data structures for pyreaper package
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .errors import (
    IncompleteGenotypeError,
    StrainNotFoundError,
    UnassignedDosageError,
)

UNKNOWN_DOSAGE = 99.0


class Genotype(IntEnum):
    """Genotype alphabet; the integer value indexes the encoding tables below"""

    MAT = 0
    HET = 1
    PAT = 2
    UNK = 3

    @property
    def dosage(self) -> float:
        return float(_DOSAGE_TABLE[self.value])

    @property
    def dominance(self) -> float:
        return float(_DOMINANCE_TABLE[self.value])


_DOSAGE_TABLE = np.array([-1.0, 0.0, 1.0, UNKNOWN_DOSAGE], dtype=np.float64)
_DOMINANCE_TABLE = np.array([0.0, 1.0, 0.0, 1.0], dtype=np.float64)


def genotype_dosage(genotypes: Union[Sequence[Genotype], np.ndarray]) -> np.ndarray:
    """Encode genotype codes as regression dosages (Mat=-1, Het=0, Pat=1, Unk=99)"""
    codes = np.asarray(genotypes, dtype=np.int8)
    return _DOSAGE_TABLE[codes]


def genotype_dominance(genotypes: Union[Sequence[Genotype], np.ndarray]) -> np.ndarray:
    """Encode genotype codes as dominance coefficients (Het/Unk=1, otherwise 0)"""
    codes = np.asarray(genotypes, dtype=np.int8)
    return _DOMINANCE_TABLE[codes]


class CrossType(str, Enum):
    """Cross designs understood by the regression engine"""

    RISET = "riset"
    INTERCROSS = "intercross"

    @property
    def has_dominance(self) -> bool:
        return self is CrossType.INTERCROSS


@dataclass(frozen=True)
class Marker:
    """Genetic marker with map position"""

    name: str
    centi_morgan: float
    mega_basepair: Optional[float] = None
    chromosome: str = ""


class Locus:
    """One marker with a genotype, dosage and optional dominance value per strain

    Dosages default to the encoding of the genotypes. After imputation a
    strain may keep the ``Genotype.UNK`` tag while carrying an estimated,
    continuous dosage; regression only ever reads the numeric values.
    """

    def __init__(self,
                 marker: Marker,
                 genotypes: Union[Sequence[Genotype], np.ndarray],
                 dosages: Optional[Union[Sequence[float], np.ndarray]] = None,
                 dominance: Optional[Union[Sequence[float], np.ndarray]] = None):
        self.marker = marker
        self.genotypes = np.array(genotypes, dtype=np.int8)
        if self.genotypes.ndim != 1:
            raise ValueError(f"Genotypes for locus {marker.name} must be one-dimensional")

        if dosages is None:
            self.dosages = genotype_dosage(self.genotypes)
        else:
            self.dosages = np.array(dosages, dtype=np.float64)
            if self.dosages.shape != self.genotypes.shape:
                raise ValueError(
                    f"Locus {marker.name}: {len(self.dosages)} dosages for "
                    f"{len(self.genotypes)} genotypes"
                )
        if np.isnan(self.dosages).any():
            unassigned = np.where(np.isnan(self.dosages))[0].tolist()
            raise UnassignedDosageError(
                f"Locus {marker.name} has no dosage assigned for strain indices {unassigned}"
            )

        if dominance is None:
            self.dominance = None
        else:
            self.dominance = np.array(dominance, dtype=np.float64)
            if self.dominance.shape != self.genotypes.shape:
                raise ValueError(
                    f"Locus {marker.name}: {len(self.dominance)} dominance values for "
                    f"{len(self.genotypes)} genotypes"
                )

    @classmethod
    def from_genotypes(cls, marker: Marker,
                       genotypes: Union[Sequence[Genotype], np.ndarray],
                       dominance: bool = False) -> "Locus":
        """Build a locus with default encodings, adding dominance coefficients if requested"""
        codes = np.array(genotypes, dtype=np.int8)
        dom = genotype_dominance(codes) if dominance else None
        return cls(marker, codes, dominance=dom)

    @property
    def cm(self) -> float:
        return self.marker.centi_morgan

    @property
    def n_strains(self) -> int:
        return len(self.genotypes)

    def genotype(self, strain_idx: int) -> Genotype:
        return Genotype(int(self.genotypes[strain_idx]))

    def missing_mask(self) -> np.ndarray:
        """Strains tagged unknown that still carry the sentinel dosage"""
        return (self.genotypes == Genotype.UNK) & (self.dosages == UNKNOWN_DOSAGE)

    def dosage_subset(self, strain_indices: Optional[np.ndarray] = None) -> np.ndarray:
        if strain_indices is None:
            return self.dosages.copy()
        return self.dosages[strain_indices]

    def dominance_subset(self, strain_indices: Optional[np.ndarray] = None) -> Optional[np.ndarray]:
        if self.dominance is None:
            return None
        if strain_indices is None:
            return self.dominance.copy()
        return self.dominance[strain_indices]

    def __repr__(self) -> str:
        return f"Locus({self.marker.name!r}, chr={self.marker.chromosome!r}, cM={self.cm})"


class Genome:
    """Chromosomes as an ordered sequence of ``(chromosome, loci)`` pairs

    Chromosome order is first-seen order; loci keep the order they were pushed in.
    """

    def __init__(self, chromosomes: Optional[Sequence[Tuple[str, List[Locus]]]] = None):
        self.chromosomes: List[Tuple[str, List[Locus]]] = []
        for chrom, loci in chromosomes or []:
            for locus in loci:
                self.push_locus(chrom, locus)

    def push_locus(self, chrom: str, locus: Locus) -> None:
        if self.chromosomes and self.chromosomes[-1][0] == chrom:
            self.chromosomes[-1][1].append(locus)
            return
        for name, loci in self.chromosomes:
            if name == chrom:
                loci.append(locus)
                return
        self.chromosomes.append((chrom, [locus]))

    def __iter__(self) -> Iterator[Tuple[str, List[Locus]]]:
        return iter(self.chromosomes)

    def __len__(self) -> int:
        return len(self.chromosomes)

    @property
    def chromosome_names(self) -> List[str]:
        return [chrom for chrom, _ in self.chromosomes]

    def iter_loci(self) -> Iterator[Locus]:
        """All loci in genome order"""
        for _, loci in self.chromosomes:
            yield from loci

    @property
    def n_loci(self) -> int:
        return sum(len(loci) for _, loci in self.chromosomes)

    @property
    def markers(self) -> List[Marker]:
        return [locus.marker for locus in self.iter_loci()]

    def find_locus(self, name: str) -> Optional[Locus]:
        for locus in self.iter_loci():
            if locus.marker.name == name:
                return locus
        return None

    def dosage_matrix(self, strain_indices: Optional[np.ndarray] = None) -> np.ndarray:
        """Dosages as a C-contiguous (n_loci × n_strains) array in genome order"""
        rows = [locus.dosage_subset(strain_indices) for locus in self.iter_loci()]
        if not rows:
            n = 0 if strain_indices is None else len(strain_indices)
            return np.zeros((0, n), dtype=np.float64)
        return np.ascontiguousarray(np.vstack(rows), dtype=np.float64)

    def dominance_matrix(self, strain_indices: Optional[np.ndarray] = None) -> Optional[np.ndarray]:
        """Dominance coefficients as (n_loci × n_strains), or None if any locus lacks them"""
        rows = []
        for locus in self.iter_loci():
            dom = locus.dominance_subset(strain_indices)
            if dom is None:
                return None
            rows.append(dom)
        if not rows:
            return None
        return np.ascontiguousarray(np.vstack(rows), dtype=np.float64)


class Dataset:
    """Genotyped strain panel

    Expected lifecycle: built by a loader, imputed once with
    ``estimate_unknown()``, then treated as read-only.
    """

    def __init__(self,
                 strains: Sequence[str],
                 genome: Optional[Genome] = None,
                 cross_type: Union[CrossType, str] = CrossType.RISET,
                 name: Optional[str] = None,
                 has_mb: bool = False):
        self.strains: List[str] = list(strains)
        self.genome = genome if genome is not None else Genome()
        self.cross_type = CrossType(cross_type)
        self.name = name
        self.has_mb = has_mb

    @property
    def dominance(self) -> bool:
        """True if the cross type models a dominance effect (intercross)"""
        return self.cross_type.has_dominance

    @property
    def n_strains(self) -> int:
        return len(self.strains)

    @property
    def n_loci(self) -> int:
        return self.genome.n_loci

    def push_locus(self, chrom: str, locus: Locus) -> None:
        if locus.n_strains != self.n_strains:
            raise ValueError(
                f"Locus {locus.marker.name} has {locus.n_strains} genotypes, "
                f"dataset has {self.n_strains} strains"
            )
        self.genome.push_locus(chrom, locus)

    def strain_indices(self, strains: Optional[Sequence[str]] = None) -> np.ndarray:
        """Positions of ``strains`` in the dataset strain list (all strains if None)"""
        if strains is None:
            return np.arange(self.n_strains, dtype=np.intp)
        lookup = {name: idx for idx, name in enumerate(self.strains)}
        missing = [s for s in strains if s not in lookup]
        if missing:
            raise StrainNotFoundError(f"Strains not present in dataset: {missing}")
        return np.array([lookup[s] for s in strains], dtype=np.intp)

    def is_complete(self) -> bool:
        return not any(locus.missing_mask().any() for locus in self.genome.iter_loci())

    def require_complete(self) -> None:
        for locus in self.genome.iter_loci():
            if locus.missing_mask().any():
                raise IncompleteGenotypeError(
                    f"Locus {locus.marker.name} still has missing genotypes; "
                    "run estimate_unknown() before regression"
                )

    def estimate_unknown(self) -> None:
        """Impute every missing genotype in place, chromosome by chromosome"""
        from ..data.imputation import impute_genome
        impute_genome(self.genome, dominance=self.dominance)


@dataclass
class QTLResult:
    """Association statistics for one marker"""

    marker: Marker
    lrs: float
    additive: float
    dominance: Optional[float] = None


class QTLScanResults:
    """Per-marker scan results for one trait, in genome order

    Standard report format: [Locus, Chr, cM, LRS, Additive, (Dominance), pValue]
    """

    def __init__(self, qtls: Sequence[QTLResult], pvalues: Optional[np.ndarray] = None):
        self.qtls = list(qtls)
        if pvalues is not None and len(pvalues) != len(self.qtls):
            raise ValueError("pvalues must have one entry per QTL result")
        self.pvalues = None if pvalues is None else np.asarray(pvalues, dtype=np.float64)

    @property
    def n_markers(self) -> int:
        return len(self.qtls)

    @property
    def lrs(self) -> np.ndarray:
        return np.array([q.lrs for q in self.qtls], dtype=np.float64)

    @property
    def additive(self) -> np.ndarray:
        return np.array([q.additive for q in self.qtls], dtype=np.float64)

    @property
    def has_dominance(self) -> bool:
        return bool(self.qtls) and all(q.dominance is not None for q in self.qtls)

    def best(self) -> Optional[QTLResult]:
        if not self.qtls:
            return None
        return self.qtls[int(np.argmax(self.lrs))]

    def to_dataframe(self, trait_name: Optional[str] = None) -> pd.DataFrame:
        """Convert to pandas DataFrame"""
        df = pd.DataFrame({
            'Locus': [q.marker.name for q in self.qtls],
            'Chr': [q.marker.chromosome for q in self.qtls],
            'cM': [q.marker.centi_morgan for q in self.qtls],
            'Mb': [q.marker.mega_basepair for q in self.qtls],
            'LRS': self.lrs,
            'Additive': self.additive,
        })
        if all(m is None for m in df['Mb']):
            df = df.drop(columns=['Mb'])
        if self.has_dominance:
            df['Dominance'] = [q.dominance for q in self.qtls]
        if self.pvalues is not None:
            df['pValue'] = self.pvalues
        if trait_name is not None:
            df.insert(0, 'ID', trait_name)
        return df


class TraitSet:
    """Named trait vectors aligned to a list of strain names"""

    def __init__(self, strains: Sequence[str], traits: Sequence[Tuple[str, Sequence[float]]]):
        self.strains: List[str] = list(strains)
        self.traits: List[Tuple[str, np.ndarray]] = []
        for name, values in traits:
            values = np.asarray(values, dtype=np.float64)
            if len(values) != len(self.strains):
                raise ValueError(
                    f"Trait {name} has {len(values)} values for {len(self.strains)} strains"
                )
            self.traits.append((name, values))

    @property
    def n_traits(self) -> int:
        return len(self.traits)

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.traits]

    def __iter__(self) -> Iterator[Tuple[str, np.ndarray]]:
        return iter(self.traits)

    def get(self, name: str) -> np.ndarray:
        for trait_name, values in self.traits:
            if trait_name == name:
                return values
        raise KeyError(name)

    def observed(self, name: str) -> Tuple[List[str], np.ndarray]:
        """Strains with a non-missing value for trait ``name`` and those values"""
        values = self.get(name)
        keep = ~np.isnan(values)
        strains = [s for s, k in zip(self.strains, keep) if k]
        return strains, values[keep]

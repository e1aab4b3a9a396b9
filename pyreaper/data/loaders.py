"""
Data loading utilities for .geno genotype files and trait tables

Genotype file layout (tab-delimited):
- ``#`` comment lines
- ``@key:value`` metadata lines; ``name``, ``mat``, ``pat`` and ``type`` are
  required, ``het`` defaults to ``H`` and ``unk`` to ``U``
- header ``Chr  Locus  cM  [Mb]  strain...``
- one line per marker: chromosome, name, cM, [Mb], one genotype symbol per strain

Compressed files (.gz/.bgz) are supported by extension.
"""

import gzip
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from ..utils.data_types import CrossType, Dataset, Genotype, Locus, Marker, TraitSet
from ..utils.errors import GenotypeMetadataError, GenotypeParseError

HEADER_PREFIX = "Chr\tLocus\tcM"
TRAIT_HEADER = "Trait"

TRAIT_NA_VALUES = ['', 'x', 'X', 'NA', 'NaN', 'nan', 'na', 'N/A', 'n/a', '.', '-']


def _open_text(path: Union[str, Path]):
    p = str(path)
    pl = p.lower()
    if pl.endswith('.gz') or pl.endswith('.bgz'):
        return io.TextIOWrapper(gzip.open(p, 'rb'))
    return open(p, 'r')


def parse_metadata_line(line: str) -> Optional[Tuple[str, str]]:
    """``(key, value)`` for an ``@key:value`` line, None for anything else"""
    if line.startswith("#") or not line.startswith("@"):
        return None
    sep = line.find(":")
    if sep < 0:
        raise GenotypeMetadataError(f"Malformed metadata line (missing ':'): {line!r}")
    return line[1:sep], line[sep + 1:]


@dataclass(frozen=True)
class GenotypeMetadata:
    """Dataset name, cross type and the symbols used for each genotype"""

    name: str
    maternal: str
    paternal: str
    cross_type: CrossType
    heterozygous: str = "H"
    unknown: str = "U"

    def parse_genotype(self, symbol: str) -> Genotype:
        if symbol == self.maternal:
            return Genotype.MAT
        if symbol == self.paternal:
            return Genotype.PAT
        if symbol == self.heterozygous:
            return Genotype.HET
        if symbol == self.unknown:
            return Genotype.UNK
        raise GenotypeParseError(
            f"Failed to parse genotype {symbol!r}; expected one of "
            f"{self.maternal!r}, {self.paternal!r}, {self.heterozygous!r}, {self.unknown!r}"
        )


def metadata_from_lines(lines: Iterable[str]) -> GenotypeMetadata:
    """Collect ``@key:value`` metadata; later duplicates override earlier ones"""
    values = {'het': 'H', 'unk': 'U'}
    for line in lines:
        parsed = parse_metadata_line(line)
        if parsed is not None:
            key, value = parsed
            values[key] = value

    missing = [key for key in ('name', 'mat', 'pat', 'type') if key not in values]
    if missing:
        raise GenotypeMetadataError(f"Required metadata was not provided: {', '.join('@' + k for k in missing)}")

    try:
        cross_type = CrossType(values['type'])
    except ValueError:
        raise GenotypeMetadataError(
            f"Unsupported dataset type {values['type']!r}; expected 'riset' or 'intercross'"
        ) from None

    return GenotypeMetadata(
        name=values['name'],
        maternal=values['mat'],
        paternal=values['pat'],
        cross_type=cross_type,
        heterozygous=values['het'],
        unknown=values['unk'],
    )


def parse_dataset_header(line: str) -> Tuple[bool, List[str]]:
    """Whether the file has an Mb column, and the strain names"""
    cols = line.rstrip('\r\n').split('\t')
    if len(cols) < 4:
        raise GenotypeMetadataError("Dataset header has fewer than four columns; no strains")
    has_mb = cols[3] == "Mb"
    strains = cols[4:] if has_mb else cols[3:]
    if not strains:
        raise GenotypeMetadataError("Dataset header lists no strains")
    return has_mb, strains


def _parse_float(value: str, label: str, line_no: int) -> float:
    try:
        return float(value)
    except ValueError:
        raise GenotypeParseError(f"Line {line_no}: invalid {label} value {value!r}") from None


def parse_locus_line(line: str,
                     metadata: GenotypeMetadata,
                     has_mb: bool,
                     n_strains: int,
                     line_no: int = 0) -> Tuple[str, Locus]:
    """Chromosome and Locus for one marker line"""
    cols = line.rstrip('\r\n').split('\t')
    first_geno = 4 if has_mb else 3
    if len(cols) < first_geno:
        raise GenotypeParseError(f"Line {line_no}: expected at least {first_geno} columns")

    chrom = cols[0]
    centi_morgan = _parse_float(cols[2], "cM", line_no)
    mega_basepair = None
    if has_mb:
        try:
            mega_basepair = float(cols[3])
        except ValueError:
            mega_basepair = None

    symbols = cols[first_geno:]
    if len(symbols) != n_strains:
        raise GenotypeParseError(
            f"Line {line_no}: marker {cols[1]} has {len(symbols)} genotypes for {n_strains} strains"
        )
    genotypes = [metadata.parse_genotype(s) for s in symbols]

    marker = Marker(name=cols[1], centi_morgan=centi_morgan,
                    mega_basepair=mega_basepair, chromosome=chrom)
    locus = Locus.from_genotypes(marker, genotypes, dominance=metadata.cross_type.has_dominance)
    return chrom, locus


def load_genotype_file(filepath: Union[str, Path], impute: bool = True) -> Dataset:
    """Load a .geno genotype file

    Args:
        filepath: Path to the genotype file
        impute: Estimate missing genotypes from flanking markers after loading

    Returns:
        Dataset with loci grouped by chromosome in first-seen order
    """
    metadata_lines = []
    dataset = None
    metadata = None
    has_mb = False

    with _open_text(filepath) as handle:
        for line_no, line in enumerate(handle, start=1):
            if dataset is None:
                if line.startswith(HEADER_PREFIX):
                    has_mb, strains = parse_dataset_header(line)
                    metadata = metadata_from_lines(metadata_lines)
                    dataset = Dataset(strains, cross_type=metadata.cross_type,
                                      name=metadata.name, has_mb=has_mb)
                else:
                    metadata_lines.append(line.rstrip('\r\n'))
                continue

            if not line.strip() or line.startswith("#"):
                continue
            chrom, locus = parse_locus_line(line, metadata, has_mb, dataset.n_strains, line_no)
            dataset.push_locus(chrom, locus)

    if dataset is None:
        raise GenotypeMetadataError(f"Reached end of {filepath} before the dataset header")

    if impute:
        dataset.estimate_unknown()
    return dataset


def load_traits_file(filepath: Union[str, Path]) -> TraitSet:
    """Load a tab-separated trait table

    The header is ``Trait`` followed by strain names; each row is a trait name
    and one value per strain. Only the tokens in ``TRAIT_NA_VALUES`` mark a
    missing value (NaN); any other non-numeric entry raises ``ValueError``.
    """
    df = pd.read_csv(filepath, sep="\t", na_values=TRAIT_NA_VALUES, keep_default_na=True)
    if len(df.columns) == 0 or df.columns[0] != TRAIT_HEADER:
        raise ValueError(f"Trait file header must start with '{TRAIT_HEADER}'")

    strains = [str(c) for c in df.columns[1:]]
    names = df.iloc[:, 0].astype(str).tolist()
    raw = df.iloc[:, 1:]
    numeric = raw.apply(pd.to_numeric, errors='coerce')
    malformed = numeric.isna().to_numpy() & raw.notna().to_numpy()
    if malformed.any():
        row, col = np.argwhere(malformed)[0]
        raise ValueError(
            f"Trait {names[row]!r}, strain {strains[col]!r}: cannot parse value {raw.iat[row, col]!r}"
        )
    values = numeric.to_numpy(dtype=np.float64)
    return TraitSet(strains, list(zip(names, values)))

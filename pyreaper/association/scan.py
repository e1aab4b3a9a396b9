"""
Genome-wide marker regression for one trait

Model selection (checked before any locus is scanned):
- riset, no control          -> trait ~ genotype
- riset, control marker      -> trait ~ genotype + control dosage   (baseline: trait ~ control)
- intercross, no control     -> trait ~ genotype + own dominance    (baseline: TSS)
- intercross, control marker -> unsupported, raises
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from ..utils.data_types import Dataset, Marker, QTLResult
from ..utils.errors import ControlMarkerNotFoundError, UnsupportedRegressionError
from .regression import scan_2n, scan_2n_variance, scan_3n_control, scan_3n_dominance


class RegressionMode(Enum):
    SINGLE = "single"
    WEIGHTED = "weighted"
    DOMINANCE = "dominance"
    CONTROL = "control"


def select_regression_mode(dataset: Dataset,
                           control: Optional[str] = None,
                           weighted: bool = False) -> RegressionMode:
    """Pick the kernel for a dataset/control combination, rejecting unsupported ones"""
    if control is not None and dataset.dominance:
        raise UnsupportedRegressionError(
            "Composite regression with a control marker is not supported for intercross data"
        )
    if weighted:
        if control is not None or dataset.dominance:
            raise UnsupportedRegressionError(
                "Variance-weighted regression is only supported for riset data without a control marker"
            )
        return RegressionMode.WEIGHTED
    if control is not None:
        return RegressionMode.CONTROL
    if dataset.dominance:
        return RegressionMode.DOMINANCE
    return RegressionMode.SINGLE


@dataclass
class ScanDesign:
    """Validated, strain-subset inputs shared by the scan, permutation and bootstrap"""

    mode: RegressionMode
    markers: List[Marker]
    geno: np.ndarray
    dominance: Optional[np.ndarray] = None
    control: Optional[np.ndarray] = None

    @property
    def n_loci(self) -> int:
        return self.geno.shape[0]

    @property
    def n_strains(self) -> int:
        return self.geno.shape[1]

    def run(self, traits: np.ndarray, variance: Optional[np.ndarray] = None):
        """Kernel scan over every locus; returns (lrs, additive, dominance-or-None)"""
        return run_kernel(self.mode, traits, self.geno,
                          dominance=self.dominance, control=self.control, variance=variance)


def run_kernel(mode: RegressionMode,
               traits: np.ndarray,
               geno: np.ndarray,
               dominance: Optional[np.ndarray] = None,
               control: Optional[np.ndarray] = None,
               variance: Optional[np.ndarray] = None):
    if mode is RegressionMode.SINGLE:
        lrs, additive = scan_2n(traits, geno)
        return lrs, additive, None
    if mode is RegressionMode.WEIGHTED:
        lrs, additive = scan_2n_variance(traits, geno, variance)
        return lrs, additive, None
    if mode is RegressionMode.DOMINANCE:
        return scan_3n_dominance(traits, geno, dominance)
    lrs, additive = scan_3n_control(traits, geno, control)
    return lrs, additive, None


def as_trait_vector(values: Sequence[float], n_strains: int, label: str) -> np.ndarray:
    vec = np.ascontiguousarray(values, dtype=np.float64)
    if vec.ndim != 1:
        raise ValueError(f"{label} must be one-dimensional")
    if len(vec) != n_strains:
        raise ValueError(f"{label} has {len(vec)} values for {n_strains} strains")
    if not np.all(np.isfinite(vec)):
        raise ValueError(f"{label} contains missing or non-finite values")
    return vec


def prepare_scan(dataset: Dataset,
                 strains: Optional[Sequence[str]] = None,
                 control: Optional[str] = None,
                 weighted: bool = False) -> ScanDesign:
    """Validate the request and extract the genotype matrices for ``strains``

    Raises before any regression runs if the control marker is missing, the
    model is unsupported, a strain is unknown, or genotypes are incomplete.
    """
    mode = select_regression_mode(dataset, control=control, weighted=weighted)

    control_locus = None
    if control is not None:
        control_locus = dataset.genome.find_locus(control)
        if control_locus is None:
            raise ControlMarkerNotFoundError(f"Control marker {control!r} could not be found in loci list")

    strain_ixs = dataset.strain_indices(strains)
    dataset.require_complete()

    geno = dataset.genome.dosage_matrix(strain_ixs)
    dominance = None
    if mode is RegressionMode.DOMINANCE:
        dominance = dataset.genome.dominance_matrix(strain_ixs)
        if dominance is None:
            raise ValueError("Intercross dataset is missing dominance coefficients")
    control_geno = None
    if control_locus is not None:
        control_geno = np.ascontiguousarray(control_locus.dosage_subset(strain_ixs))

    return ScanDesign(
        mode=mode,
        markers=dataset.genome.markers,
        geno=geno,
        dominance=dominance,
        control=control_geno,
    )


def REAPER_Regression(dataset: Dataset,
                      traits: Sequence[float],
                      strains: Optional[Sequence[str]] = None,
                      control: Optional[str] = None,
                      variance: Optional[Sequence[float]] = None,
                      verbose: bool = True) -> List[QTLResult]:
    """Marker regression of one trait at every locus

    Args:
        dataset: Genotype-complete dataset (imputation already applied)
        traits: Trait values aligned to ``strains``
        strains: Strain names the trait values belong to (default: all dataset strains)
        control: Optional control marker name for composite regression
        variance: Optional per-strain trait variance for weighted regression
        verbose: Print progress information

    Returns:
        One QTLResult per locus in genome order. Dominance is reported only
        for intercross data without a control marker.
    """
    design = prepare_scan(dataset, strains=strains, control=control,
                          weighted=variance is not None)
    y = as_trait_vector(traits, design.n_strains, "Trait vector")
    var = None
    if variance is not None:
        var = as_trait_vector(variance, design.n_strains, "Variance vector")

    if verbose:
        print(f"Marker regression ({design.mode.value}) on {design.n_strains} strains, {design.n_loci} loci")

    lrs, additive, dominance = design.run(y, variance=var)

    results = []
    for j, marker in enumerate(design.markers):
        results.append(QTLResult(
            marker=marker,
            lrs=float(lrs[j]),
            additive=float(additive[j]),
            dominance=None if dominance is None else float(dominance[j]),
        ))
    return results

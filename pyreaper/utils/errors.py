"""
Exception types raised by pyreaper
"""


class GenotypeParseError(ValueError):
    """A genotype symbol did not match any symbol declared in the file metadata"""


class GenotypeMetadataError(ValueError):
    """Required genotype-file metadata or header fields are missing"""


class UnassignedDosageError(ValueError):
    """A locus was built with a genotype whose dosage was never assigned"""


class IncompleteGenotypeError(ValueError):
    """Regression was requested on a dataset that still carries missing genotypes"""


class StrainNotFoundError(ValueError):
    """A requested strain is not part of the dataset"""


class ControlMarkerNotFoundError(ValueError):
    """The requested control marker is not present in the genome"""


class UnsupportedRegressionError(ValueError):
    """The requested combination of cross type and covariates has no model"""


class ImputationInvariantError(RuntimeError):
    """A missing-genotype run is flanked by a locus that is itself unknown.

    Boundary fix-up rules this out, so it only surfaces when estimation is
    called directly on loci whose chromosome ends were not fixed.
    """

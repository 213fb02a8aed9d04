from __future__ import annotations


class ReliabilityError(ValueError):
    """base class for input-validation failures of the reliability methods."""


class DegenerateModel(ReliabilityError):
    """ANOVA residual term is undefined (zero residual degrees of freedom)."""


class UndefinedRatio(ReliabilityError):
    """a ratio was requested over a zero or negative mean."""


class InsufficientTrials(ReliabilityError):
    """fewer trials (or athletes) than a formula requires."""


class MissingTimepoint(ReliabilityError):
    """an athlete lacks one of the two testing sessions."""

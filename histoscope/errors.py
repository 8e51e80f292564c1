"""
``histoscope.errors``
=====================

Exceptions raised by the package. Values falling outside of a binning
range are never errors: they are counted as underflows or overflows.
"""

__all__ = [
    "HistoscopeError",
    "ConstructionError",
    "ShapeMismatch",
    "IndexOutOfBounds",
    "ParseError",
    "BuilderFrozen",
]


class HistoscopeError(Exception):
    """Base class for all errors raised by ``histoscope``."""


class ConstructionError(HistoscopeError, ValueError):
    """Invalid parameters passed when building a binning strategy or a
    histogram.
    """


class ShapeMismatch(ConstructionError):
    """Content and binning strategy disagree on the number of bins, or
    two histograms combined elementwise do not share a strategy.
    """


class IndexOutOfBounds(HistoscopeError, IndexError):
    """Bin index, or slice bound, outside of the valid range."""


class ParseError(HistoscopeError, ValueError):
    """Malformed textual representation of a histogram or binning."""


class BuilderFrozen(HistoscopeError, RuntimeError):
    """Operation attempted on a mutable histogram after it was frozen."""

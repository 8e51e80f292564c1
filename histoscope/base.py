"""
``histoscope.base``
===================

Package-wide base classes, interfaces, and type definitions.
"""
import operator as op
import typing as ty

import numpy as np
import numpy.typing as npt
import typing_extensions as tyx

__all__ = [
    "IntVector",
    "DoubleVector",
    "AnyVector",
    "Axis",
    "Indexable",
    "BinLike",
    "SliceableBin",
    "VariableBin",
    "IntervalBin",
    "Bin1D",
    "Monoid",
    "SUM",
    "TUPLE",
    "LIST_CONCAT",
]


IntVector: tyx.TypeAlias = npt.NDArray[np.int64]
DoubleVector: tyx.TypeAlias = npt.NDArray[np.float64]
AnyVector: tyx.TypeAlias = npt.NDArray[ty.Any]

Axis = ty.Literal["x", "y"]


@ty.runtime_checkable
class Indexable(ty.Protocol):
    """Interface for values with an injective projection onto the
    integers, ie. anything implementing Python's ``__index__`` protocol,
    such as ``int`` or ``enum.IntEnum`` members.
    """

    def __index__(self) -> int:
        ...


@ty.runtime_checkable
class BinLike(ty.Protocol):
    """Interface for binning strategies, mapping domain values onto
    integer bin indices and back.

    Attributes
    ----------
    n_bins : int
        Total number of bins, fixed at construction.
    """

    @property
    def n_bins(self) -> int:
        ...

    def to_index(self, value: ty.Any) -> int:
        ...

    def from_index(self, index: int) -> ty.Any:
        ...

    def in_range(self, value: ty.Any) -> bool:
        ...


@ty.runtime_checkable
class SliceableBin(BinLike, ty.Protocol):
    """Binning strategy which may be restricted to a sub-range of its
    bins.
    """

    def slice_bin(self, start: int, stop: int) -> tyx.Self:
        ...


@ty.runtime_checkable
class VariableBin(BinLike, ty.Protocol):
    """Binning strategy which can report the width of each bin."""

    def bin_size(self, index: int) -> float:
        ...


@ty.runtime_checkable
class IntervalBin(BinLike, ty.Protocol):
    """Binning strategy whose bins are intervals of the real line."""

    def bin_interval(self, index: int) -> ty.Tuple[float, float]:
        ...


@ty.runtime_checkable
class Bin1D(BinLike, ty.Protocol):
    """One-dimensional binning strategy with well defined limits."""

    @property
    def lower_limit(self) -> ty.Any:
        ...

    @property
    def upper_limit(self) -> ty.Any:
        ...


class Monoid(ty.NamedTuple):
    """Identity element paired with an associative binary operation.

    :group: accumulate

    Attributes
    ----------
    identity : Any
        Neutral element of ``combine``.
    combine : callable
        Associative operation joining two elements. It must return a
        new object rather than mutating its arguments.
    """

    identity: ty.Any
    combine: ty.Callable[[ty.Any, ty.Any], ty.Any]

    def concat(self, values: ty.Iterable[ty.Any]) -> ty.Any:
        """Left-to-right combination of ``values``, starting from
        ``identity``.
        """
        result = self.identity
        for val in values:
            result = self.combine(result, val)
        return result


SUM = Monoid(0, op.add)
TUPLE = Monoid((), op.add)
LIST_CONCAT = Monoid([], op.add)

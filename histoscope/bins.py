"""
``histoscope.bins``
===================

Binning strategies, mapping values of a domain onto integer bin indices
and back. Every strategy is an immutable dataclass, so equality is
structural.
"""
import dataclasses as dc
import math
import operator as op
import typing as ty

import numpy as np
import typing_extensions as tyx

from . import base
from .errors import ConstructionError, IndexOutOfBounds

__all__ = [
    "BinI",
    "BinInt",
    "BinIx",
    "BinF",
    "LogBinD",
    "Bin2D",
    "BIN_TYPES",
    "bin_i",
    "bin_int",
    "bin_ix",
    "bin_f",
    "log_bin_d",
    "bin_2d",
    "format_scalar",
]


def format_scalar(value: ty.Any) -> str:
    """Text form of a scalar which reads back to an equal value.
    ``float`` values are written with ``repr()``, which is exact.
    """
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float):
        return repr(value)
    return str(value)


def _floor_index(pos: float, n_bins: int) -> int:
    """Floor of a fractional bin position. Infinite positions map to
    the underflow or overflow index, NaN to overflow.
    """
    if math.isnan(pos):
        return n_bins
    if math.isinf(pos):
        return -1 if pos < 0 else n_bins
    return math.floor(pos)


def _check_slice(start: int, stop: int, n_bins: int) -> None:
    if not (0 <= start <= stop < n_bins):
        raise IndexOutOfBounds(
            f"Slice [{start}, {stop}] is outside of bins [0, {n_bins})."
        )


class _Bin:
    """Operations shared by all strategies, in terms of ``to_index``
    and ``n_bins``.
    """

    keyword: ty.ClassVar[str]
    header_labels: ty.ClassVar[ty.Tuple[str, ...]]
    header_parsers: ty.ClassVar[ty.Tuple[ty.Callable[[str], ty.Any], ...]]

    @property
    def n_bins(self) -> int:
        raise NotImplementedError

    def to_index(self, value: ty.Any) -> int:
        raise NotImplementedError

    def in_range(self, value: ty.Any) -> bool:
        """Whether ``value`` falls within one of the bins."""
        return 0 <= self.to_index(value) < self.n_bins

    def header_values(self) -> ty.Tuple[ty.Any, ...]:
        """Parameters of the strategy, in the order of
        ``header_labels``.
        """
        return tuple(getattr(self, f.name) for f in dc.fields(self))

    @classmethod
    def from_header(cls, *values: ty.Any, **context: ty.Any) -> tyx.Self:
        """Inverse of ``header_values()``."""
        return cls(*values)

    def format_value(self, value: ty.Any) -> str:
        return format_scalar(value)


@dc.dataclass(frozen=True)
class BinI(_Bin):
    """Integer bins of unit width, covering the inclusive range
    ``[lo, hi]``.

    :group: bins

    Parameters
    ----------
    lo, hi : int
        Lowest and highest values which are binned.

    Raises
    ------
    ConstructionError
        If ``hi`` is lower than ``lo``.
    """

    lo: int
    hi: int

    keyword: ty.ClassVar[str] = "BinI"
    header_labels: ty.ClassVar[ty.Tuple[str, ...]] = ("Low", "High")
    header_parsers = (int, int)

    def __post_init__(self) -> None:
        if self.hi < self.lo:
            raise ConstructionError(
                f"BinI: upper bound {self.hi} is lower than lower "
                f"bound {self.lo}."
            )

    @property
    def n_bins(self) -> int:
        return self.hi - self.lo + 1

    def to_index(self, value: int) -> int:
        return op.index(value) - self.lo

    def from_index(self, index: int) -> int:
        return self.lo + index

    def slice_bin(self, start: int, stop: int) -> "BinI":
        _check_slice(start, stop, self.n_bins)
        return BinI(self.lo + start, self.lo + stop)

    def bin_size(self, index: int) -> int:
        return 1

    @property
    def lower_limit(self) -> int:
        return self.lo

    @property
    def upper_limit(self) -> int:
        return self.hi


@dc.dataclass(frozen=True)
class BinInt(_Bin):
    """Integer bins of width ``step``, starting at ``base``. Each bin
    holds the values ``[base + i * step, base + (i + 1) * step)``, and is
    represented by its lowest value.

    :group: bins

    Parameters
    ----------
    base : int
        Lowest value of the first bin.
    step : int
        Width of every bin. Must be positive.
    max : int
        Value which must fall within the last bin. It is normalised to
        the lowest value of that bin.

    Raises
    ------
    ConstructionError
        If ``step`` is not positive, or if ``max`` is lower than
        ``base``.
    """

    base: int
    step: int
    max: int

    keyword: ty.ClassVar[str] = "BinInt"
    header_labels: ty.ClassVar[ty.Tuple[str, ...]] = ("Base", "Step", "Max")
    header_parsers = (int, int, int)

    def __post_init__(self) -> None:
        if self.step <= 0:
            raise ConstructionError(
                f"BinInt: step must be positive, received {self.step}."
            )
        if self.max < self.base:
            raise ConstructionError(
                f"BinInt: negative number of bins, max {self.max} is lower "
                f"than base {self.base}."
            )
        last = self.base + ((self.max - self.base) // self.step) * self.step
        object.__setattr__(self, "max", last)

    @property
    def n_bins(self) -> int:
        return (self.max - self.base) // self.step + 1

    def to_index(self, value: int) -> int:
        return (op.index(value) - self.base) // self.step

    def from_index(self, index: int) -> int:
        return self.base + index * self.step

    def slice_bin(self, start: int, stop: int) -> "BinInt":
        _check_slice(start, stop, self.n_bins)
        return BinInt(
            self.from_index(start), self.step, self.from_index(stop)
        )

    def bin_size(self, index: int) -> int:
        return self.step

    @property
    def lower_limit(self) -> int:
        return self.base

    @property
    def upper_limit(self) -> int:
        return self.max


@dc.dataclass(frozen=True)
class BinIx(_Bin):
    """Unit width bins over any type implementing ``__index__``, such
    as ``enum.IntEnum``, covering the inclusive range ``[lo, hi]``.

    :group: bins

    Parameters
    ----------
    lo, hi : Indexable
        Lowest and highest values which are binned.
    deindex : callable, optional
        Inverse of ``operator.index()`` for the value type. Defaults to
        the type of ``lo``. Not taken into account for equality.

    Raises
    ------
    ConstructionError
        If the index of ``hi`` is lower than the index of ``lo``.
    """

    lo: base.Indexable
    hi: base.Indexable
    deindex: ty.Optional[ty.Callable[[int], ty.Any]] = dc.field(
        default=None, compare=False, repr=False
    )

    keyword: ty.ClassVar[str] = "BinIx"
    header_labels: ty.ClassVar[ty.Tuple[str, ...]] = ("Low", "High")
    header_parsers = (int, int)

    def __post_init__(self) -> None:
        if self.deindex is None:
            object.__setattr__(self, "deindex", type(self.lo))
        lo_idx, hi_idx = op.index(self.lo), op.index(self.hi)
        if hi_idx < lo_idx:
            raise ConstructionError(
                f"BinIx: index of upper bound {hi_idx} is lower than index "
                f"of lower bound {lo_idx}."
            )

    @property
    def n_bins(self) -> int:
        return op.index(self.hi) - op.index(self.lo) + 1

    def to_index(self, value: base.Indexable) -> int:
        return op.index(value) - op.index(self.lo)

    def from_index(self, index: int) -> ty.Any:
        return self.deindex(op.index(self.lo) + index)

    def slice_bin(self, start: int, stop: int) -> "BinIx":
        _check_slice(start, stop, self.n_bins)
        lo, hi = self.from_index(start), self.from_index(stop)
        return BinIx(lo, hi, self.deindex)

    def bin_size(self, index: int) -> int:
        return 1

    @property
    def lower_limit(self) -> ty.Any:
        return self.lo

    @property
    def upper_limit(self) -> ty.Any:
        return self.hi

    def header_values(self) -> ty.Tuple[int, int]:
        return op.index(self.lo), op.index(self.hi)

    @classmethod
    def from_header(cls, *values: ty.Any, **context: ty.Any) -> "BinIx":
        deindex = context.get("deindex") or int
        lo, hi = values
        return cls(deindex(lo), deindex(hi), deindex)

    def format_value(self, value: base.Indexable) -> str:
        return str(op.index(value))


@dc.dataclass(frozen=True)
class BinF(_Bin):
    """Equal width floating point bins, covering the half-open interval
    ``[lo, hi)``. Bins are represented by their midpoints.

    :group: bins

    Parameters
    ----------
    lo : float
        Lower bound of the binned interval.
    n : int
        Number of bins.
    hi : float
        Upper bound of the binned interval.

    Attributes
    ----------
    step : float
        Width of every bin.

    Raises
    ------
    ConstructionError
        If ``n`` is negative, or if ``hi`` does not exceed ``lo``.
    """

    lo: float
    n: int
    hi: float
    step: float = dc.field(init=False, repr=False, compare=False)

    keyword: ty.ClassVar[str] = "BinF"
    header_labels: ty.ClassVar[ty.Tuple[str, ...]] = ("Lo", "N", "Hi")
    header_parsers = (float, int, float)

    def __post_init__(self) -> None:
        if self.n < 0:
            raise ConstructionError(
                f"BinF: negative number of bins, received {self.n}."
            )
        if self.n > 0 and not self.hi > self.lo:
            raise ConstructionError(
                f"BinF: upper bound {self.hi} must exceed lower bound "
                f"{self.lo}."
            )
        step = (self.hi - self.lo) / self.n if self.n else math.inf
        object.__setattr__(self, "step", step)

    @property
    def n_bins(self) -> int:
        return self.n

    def to_index(self, value: float) -> int:
        return _floor_index((value - self.lo) / self.step, self.n)

    def from_index(self, index: int) -> float:
        return self.lo + (index + 0.5) * self.step

    def slice_bin(self, start: int, stop: int) -> "BinF":
        _check_slice(start, stop, self.n)
        return BinF(
            self.lo + start * self.step,
            stop - start + 1,
            self.lo + (stop + 1) * self.step,
        )

    def bin_size(self, index: int) -> float:
        return self.step

    def bin_interval(self, index: int) -> ty.Tuple[float, float]:
        return (
            self.lo + index * self.step,
            self.lo + (index + 1) * self.step,
        )

    @property
    def lower_limit(self) -> float:
        return self.lo

    @property
    def upper_limit(self) -> float:
        return self.hi

    def header_values(self) -> ty.Tuple[float, int, float]:
        return self.lo, self.n, self.hi


@dc.dataclass(frozen=True)
class LogBinD(_Bin):
    """Floating point bins whose widths increase geometrically by
    ``ratio``, starting at ``lo``. Bins are represented by their
    geometric midpoints, ``lo * ratio ** (i + 0.5)``.

    :group: bins

    Parameters
    ----------
    lo : float
        Lower bound of the binned interval. Must not be zero.
    ratio : float
        Ratio between the upper and lower edge of every bin.
    n : int
        Number of bins.

    Raises
    ------
    ConstructionError
        If ``n`` is negative, ``lo`` is zero, or ``ratio`` is not
        positive or equal to one.

    Notes
    -----
    Use ``log_bin_d()`` to construct from the interval limits.
    """

    lo: float
    ratio: float
    n: int
    _log_ratio: float = dc.field(init=False, repr=False, compare=False)

    keyword: ty.ClassVar[str] = "LogBinD"
    header_labels: ty.ClassVar[ty.Tuple[str, ...]] = ("Lo", "Ratio", "N")
    header_parsers = (float, float, int)

    def __post_init__(self) -> None:
        if self.n < 0:
            raise ConstructionError(
                f"LogBinD: negative number of bins, received {self.n}."
            )
        if self.lo == 0:
            raise ConstructionError("LogBinD: lower bound must not be zero.")
        if not self.ratio > 0 or self.ratio == 1:
            raise ConstructionError(
                f"LogBinD: ratio must be positive and not one, received "
                f"{self.ratio}."
            )
        object.__setattr__(self, "_log_ratio", math.log(self.ratio))

    @property
    def n_bins(self) -> int:
        return self.n

    def to_index(self, value: float) -> int:
        quot = value / self.lo
        if quot > 0:
            pos = math.log(quot) / self._log_ratio
        elif quot <= 0:  # other side of zero, the log limit is -inf
            pos = -math.inf if self._log_ratio > 0 else math.inf
        else:
            pos = math.nan
        return _floor_index(pos, self.n)

    def from_index(self, index: int) -> float:
        return self.lo * self.ratio ** (index + 0.5)

    def slice_bin(self, start: int, stop: int) -> "LogBinD":
        _check_slice(start, stop, self.n)
        return LogBinD(
            self.lo * self.ratio**start, self.ratio, stop - start + 1
        )

    def bin_interval(self, index: int) -> ty.Tuple[float, float]:
        lower = self.lo * self.ratio**index
        return lower, lower * self.ratio

    def bin_size(self, index: int) -> float:
        lower, upper = self.bin_interval(index)
        return upper - lower

    @property
    def lower_limit(self) -> float:
        return self.lo

    @property
    def upper_limit(self) -> float:
        return self.lo * self.ratio**self.n

    def header_values(self) -> ty.Tuple[float, float, int]:
        return self.lo, self.ratio, self.n


@dc.dataclass(frozen=True)
class Bin2D(_Bin):
    """Product of two binning strategies. Values are ``(x, y)`` pairs,
    and the linear index is ``ix + iy * n_bins_x``, so the x axis varies
    fastest.

    :group: bins

    Parameters
    ----------
    x, y : BinLike
        Strategies for the first and second component of the values.

    Notes
    -----
    Any pair outside of the range of either axis is mapped to ``-1`` if
    one of its components lies below its axis, and to ``n_bins``
    otherwise. Out of range pairs therefore never alias onto a valid
    linear index.
    """

    x: base.BinLike
    y: base.BinLike

    keyword: ty.ClassVar[str] = "Bin2D"
    header_labels: ty.ClassVar[ty.Tuple[str, ...]] = ("X", "Y")

    @property
    def n_bins_x(self) -> int:
        return self.x.n_bins

    @property
    def n_bins_y(self) -> int:
        return self.y.n_bins

    @property
    def n_bins(self) -> int:
        return self.n_bins_x * self.n_bins_y

    def to_index_2d(
        self, value: ty.Tuple[ty.Any, ty.Any]
    ) -> ty.Tuple[int, int]:
        """Pair of indices along the x and y axes, respectively."""
        val_x, val_y = value
        return self.x.to_index(val_x), self.y.to_index(val_y)

    def to_index(self, value: ty.Tuple[ty.Any, ty.Any]) -> int:
        ix, iy = self.to_index_2d(value)
        nx = self.n_bins_x
        if 0 <= ix < nx and 0 <= iy < self.n_bins_y:
            return ix + iy * nx
        if ix < 0 or iy < 0:
            return -1
        return self.n_bins

    def from_index(self, index: int) -> ty.Tuple[ty.Any, ty.Any]:
        if self.n_bins_x == 0:
            raise IndexOutOfBounds(f"Bin2D: no bins along x for {index}.")
        iy, ix = divmod(index, self.n_bins_x)
        return self.x.from_index(ix), self.y.from_index(iy)

    def in_range(self, value: ty.Tuple[ty.Any, ty.Any]) -> bool:
        val_x, val_y = value
        return self.x.in_range(val_x) and self.y.in_range(val_y)

    def format_value(self, value: ty.Tuple[ty.Any, ty.Any]) -> str:
        val_x, val_y = value
        return f"{self.x.format_value(val_x)} {self.y.format_value(val_y)}"


BIN_TYPES: ty.Dict[str, ty.Type[_Bin]] = {
    cls.keyword: cls for cls in (BinI, BinInt, BinIx, BinF, LogBinD, Bin2D)
}


def bin_i(lo: int, hi: int) -> BinI:
    """Unit width integer bins over the inclusive range ``[lo, hi]``.

    :group: bins
    """
    return BinI(lo, hi)


def bin_int(base: int, step: int, max: int) -> BinInt:
    """Integer bins of width ``step``, from ``base`` up to and including
    the bin holding ``max``.

    :group: bins
    """
    return BinInt(base, step, max)


def bin_ix(
    lo: base.Indexable,
    hi: base.Indexable,
    deindex: ty.Optional[ty.Callable[[int], ty.Any]] = None,
) -> BinIx:
    """Unit width bins over the inclusive range ``[lo, hi]`` of an
    ``__index__`` implementing type.

    :group: bins
    """
    return BinIx(lo, hi, deindex)


def bin_f(lo: float, n: int, hi: float) -> BinF:
    """``n`` equal width bins over ``[lo, hi)``.

    :group: bins
    """
    return BinF(float(lo), n, float(hi))


def log_bin_d(lo: float, n: int, hi: float) -> LogBinD:
    """``n`` logarithmically spaced bins over ``[lo, hi)``.

    :group: bins

    Parameters
    ----------
    lo, hi : float
        Limits of the binned interval. Must have the same sign.
    n : int
        Number of bins.

    Returns
    -------
    LogBinD
        Bins with ratio ``(hi / lo) ** (1 / n)``.

    Raises
    ------
    ConstructionError
        If ``n`` is negative, or the interval includes zero.
    """
    if lo * hi <= 0:
        raise ConstructionError(
            f"LogBinD: interval [{lo}, {hi}) must not include zero."
        )
    if n < 0:
        raise ConstructionError(
            f"LogBinD: negative number of bins, received {n}."
        )
    ratio = (hi / lo) ** (1.0 / n) if n else math.inf
    return LogBinD(float(lo), ratio, n)


def bin_2d(x: base.BinLike, y: base.BinLike) -> Bin2D:
    """Product of the ``x`` and ``y`` strategies.

    :group: bins
    """
    return Bin2D(x, y)

"""
``histoscope.mutable``
======================

Mutable histograms, filled one value at a time, and frozen into
immutable ``Histogram`` snapshots.
"""
import enum
import logging as lg
import numbers
import operator as op
import typing as ty

import numpy as np
import numpy.typing as npt
from tabulate import tabulate

from . import base
from .errors import BuilderFrozen
from .histogram import Histogram

__all__ = ["BuilderState", "MutableHistogram", "new_builder"]


class BuilderState(enum.Enum):
    BUILDING = "building"
    FROZEN = "frozen"


# storage is only promoted to a higher kind, never within one
_KIND_RANK = {"b": 0, "u": 1, "i": 1, "f": 2, "c": 3}


def _infer_dtype(zero: ty.Any) -> np.dtype:
    if isinstance(zero, (numbers.Number, np.generic)):
        return np.asarray(zero).dtype
    return np.dtype(object)


def _weight_dtype(weight: ty.Any) -> ty.Optional[np.dtype]:
    if isinstance(weight, np.generic):
        return weight.dtype
    if isinstance(weight, (int, float, complex)):
        return np.asarray(weight).dtype
    return None


def _filled(size: int, zero: ty.Any, dtype: np.dtype) -> base.AnyVector:
    arr = np.empty(size, dtype=dtype)
    if dtype == np.dtype(object):
        for idx in range(size):
            arr[idx] = zero
    else:
        arr.fill(zero)
    return arr


class MutableHistogram:
    """Histogram which is filled in place, one value at a time. Values
    below or above the range of the bins are accumulated into separate
    underflow and overflow cells.

    :group: data

    Parameters
    ----------
    zero : Any
        Initial content of every bin and of the underflow and overflow
        cells. For accumulations with ``fill_monoid()`` this is the
        identity of the monoid.
    bins : BinLike
        Binning strategy.
    dtype : DTypeLike, optional
        Numpy dtype specifier for the storage. By default it is inferred
        from ``zero``: numeric zeros give a numeric dtype, anything else
        ``object``. Numeric storage is promoted when a weight does not
        fit, eg. an integer histogram filled with fractional weights
        becomes floating point.

    Attributes
    ----------
    bins : BinLike
        Binning strategy.
    zero : Any
        Initial content of every cell.
    dtype : dtype
        Numpy dtype of the storage.
    state : BuilderState
        ``BUILDING`` until ``freeze()`` is called, ``FROZEN`` afterwards.
    """

    def __init__(
        self,
        zero: ty.Any,
        bins: base.BinLike,
        dtype: ty.Optional[npt.DTypeLike] = None,
    ) -> None:
        self.bins = bins
        self.zero = zero
        self.dtype = np.dtype(_infer_dtype(zero) if dtype is None else dtype)
        self.state = BuilderState.BUILDING
        self._outliers = _filled(2, zero, self.dtype)
        self._content = _filled(bins.n_bins, zero, self.dtype)

    @property
    def n_bins(self) -> int:
        return self._content.shape[0]

    @property
    def is_frozen(self) -> bool:
        return self.state is BuilderState.FROZEN

    def _table_info(self) -> ty.List[ty.List[ty.Any]]:
        return [
            ["bins", self.bins],
            ["n_bins", self.n_bins],
            ["state", self.state.value],
            ["dtype", self.dtype],
        ]

    def __repr__(self) -> str:
        table = tabulate(self._table_info(), tablefmt="simple")
        return "MutableHistogram\n" + table

    def _cell(self, value: ty.Any) -> ty.Tuple[base.AnyVector, int]:
        """Buffer and position into which ``value`` is accumulated."""
        if self.state is BuilderState.FROZEN:
            raise BuilderFrozen("Can not fill a frozen histogram.")
        idx = self.bins.to_index(value)
        if idx < 0:
            return self._outliers, 0
        if idx >= self.n_bins:
            return self._outliers, 1
        return self._content, idx

    def fill(self, value: ty.Any) -> None:
        """Adds one to the bin holding ``value``."""
        self.fill_weighted(value, 1)

    def _promote(self, weight: ty.Any) -> None:
        """Widens the storage dtype so that ``weight`` can be added
        without loss.
        """
        weight_dtype = _weight_dtype(weight)
        if self.is_frozen or weight_dtype is None:
            return
        rank = _KIND_RANK.get(weight_dtype.kind)
        current = _KIND_RANK.get(self.dtype.kind)
        if rank is None or current is None or rank <= current:
            return
        dtype = np.result_type(self.dtype, weight_dtype)
        lg.debug(f"Promoting histogram storage from {self.dtype} to {dtype}")
        self.dtype = dtype
        self._content = self._content.astype(dtype)
        self._outliers = self._outliers.astype(dtype)

    def fill_weighted(self, value: ty.Any, weight: ty.Any) -> None:
        """Adds ``weight`` to the bin holding ``value``. Numeric storage
        is promoted first if ``weight`` does not fit its dtype.
        """
        self._promote(weight)
        buffer, idx = self._cell(value)
        buffer[idx] = buffer[idx] + weight

    def fill_monoid(
        self,
        value: ty.Any,
        element: ty.Any,
        combine: ty.Callable[[ty.Any, ty.Any], ty.Any] = op.add,
    ) -> None:
        """Combines the content of the bin holding ``value`` with
        ``element``, as ``combine(content, element)``.

        Parameters
        ----------
        value : Any
            Value which is binned.
        element : Any
            Element accumulated into the bin.
        combine : callable
            Associative operation, whose identity was passed as
            ``zero``. Must return a new object rather than mutating the
            current content. Default is ``operator.add``.
        """
        buffer, idx = self._cell(value)
        buffer[idx] = combine(buffer[idx], element)

    def fill_many(
        self,
        values: ty.Iterable[ty.Any],
        weights: ty.Optional[ty.Iterable[ty.Any]] = None,
    ) -> None:
        """Fills each of ``values`` in order, optionally weighted by the
        corresponding element of ``weights``.
        """
        if weights is None:
            for val in values:
                self.fill(val)
            return
        for val, weight in zip(values, weights):
            self.fill_weighted(val, weight)

    def freeze(self) -> Histogram:
        """Copies the accumulated contents into an immutable
        ``Histogram``, with underflows and overflows set. The histogram
        never shares memory with this instance.

        Returns
        -------
        Histogram
            Snapshot of the contents.

        Raises
        ------
        BuilderFrozen
            If the histogram was already frozen.
        """
        if self.state is BuilderState.FROZEN:
            raise BuilderFrozen("Histogram has already been frozen.")
        self.state = BuilderState.FROZEN
        content = self._content.copy()
        outliers = tuple(self._outliers.tolist())
        lg.debug(f"Froze histogram with {self.n_bins} bins over {self.bins}")
        return Histogram(self.bins, content, outliers)


def new_builder(
    zero: ty.Any, bins: base.BinLike, dtype: ty.Optional[npt.DTypeLike] = None
) -> MutableHistogram:
    """Creates a ``MutableHistogram`` with every cell set to ``zero``.

    :group: data
    """
    return MutableHistogram(zero, bins, dtype)

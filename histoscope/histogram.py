"""
``histoscope.histogram``
========================

Immutable histograms, pairing a binning strategy with a fixed length
array of bin contents, and optional underflow and overflow counts.
"""
import dataclasses as dc
import functools as fn
import io
import itertools as it
import numbers
import operator as op
import typing as ty
import warnings
from pathlib import Path

import numpy as np
import numpy.typing as npt
import typing_extensions as tyx
from tabulate import tabulate

from . import base
from .bins import Bin2D
from .errors import IndexOutOfBounds, ShapeMismatch

__all__ = ["Histogram", "as_content", "histogram", "histogram_with_overflow"]


_SCALAR_TYPES = (numbers.Number, np.generic, str, bytes)


def as_content(
    values: ty.Iterable[ty.Any], dtype: ty.Optional[npt.DTypeLike] = None
) -> base.AnyVector:
    """Converts ``values`` into a one-dimensional numpy array suitable
    for storing bin contents. One-dimensional arrays are returned
    unchanged if no ``dtype`` is requested. Sequences of scalars are
    stored with their natural numpy dtype, while anything else, such as
    lists or tuples, is stored elementwise in an array of
    ``dtype=object``.

    :group: data

    Parameters
    ----------
    values : iterable
        Bin contents.
    dtype : DTypeLike, optional
        Numpy dtype specifier for the output. Default is ``None``,
        meaning the dtype is inferred.

    Returns
    -------
    ndarray
        Contents, as a one-dimensional array.
    """
    if isinstance(values, np.ndarray) and values.ndim == 1:
        if dtype is None:
            return values
        return values.astype(dtype, copy=False)
    items = list(values)
    if dtype is not None and np.dtype(dtype) != np.dtype(object):
        return np.asarray(items, dtype=dtype)
    if dtype is None and all(isinstance(x, _SCALAR_TYPES) for x in items):
        arr = np.asarray(items)
        if arr.ndim == 1:
            return arr
    arr = np.empty(len(items), dtype=object)
    for idx, item in enumerate(items):
        arr[idx] = item
    return arr


def _readonly(arr: base.AnyVector) -> base.AnyVector:
    view = arr.view()
    view.flags.writeable = False
    return view


def _as_python(val: ty.Any) -> ty.Any:
    return val.item() if isinstance(val, np.generic) else val


def _array_equal(lhs: base.AnyVector, rhs: base.AnyVector) -> bool:
    """Elementwise equality, with NaN equal to NaN for numeric arrays."""
    numeric = all(np.issubdtype(x.dtype, np.number) for x in (lhs, rhs))
    return bool(np.array_equal(lhs, rhs, equal_nan=numeric))


@dc.dataclass(frozen=True, eq=False, repr=False)
class Histogram:
    """Immutable histogram data structure.

    :group: data

    Parameters
    ----------
    bins : BinLike
        Binning strategy, mapping values onto bin indices.
    content : iterable
        Contents of each bin, in index order. Must hold exactly
        ``bins.n_bins`` elements. Numpy arrays are wrapped without
        copying.
    outliers : tuple[Any, Any], optional
        Underflow and overflow contents, respectively. Default is
        ``None``.

    Attributes
    ----------
    bins : BinLike
        Binning strategy, mapping values onto bin indices.
    content : ndarray
        Read-only array of bin contents.
    outliers : tuple[Any, Any], optional
        Underflow and overflow contents, respectively.

    Raises
    ------
    ShapeMismatch
        If the number of elements in ``content`` differs from the number
        of bins.

    Notes
    -----
    Every transformation returns a new ``Histogram``. Slices share their
    memory with the histogram they are taken from.
    """

    bins: base.BinLike
    content: base.AnyVector
    outliers: ty.Optional[ty.Tuple[ty.Any, ty.Any]] = None

    def __post_init__(self) -> None:
        content = self.content
        if not isinstance(content, np.ndarray) or content.ndim == 1:
            content = as_content(content)
        n_bins = self.bins.n_bins
        if content.ndim != 1 or content.shape[0] != n_bins:
            raise ShapeMismatch(
                f"Number of bins ({n_bins}) and content shape "
                f"{content.shape} do not match."
            )
        object.__setattr__(self, "content", _readonly(content))
        if self.outliers is not None:
            outliers = tuple(self.outliers)
            if len(outliers) != 2:
                raise ShapeMismatch(
                    "Must pass underflow and overflow as a pair, received "
                    f"{len(outliers)} values."
                )
            object.__setattr__(self, "outliers", outliers)

    def __eq__(self, other: object) -> bool:
        """Determines if two ``Histogram`` instances have equal binning
        strategies, out of range contents, and bin contents.
        """
        if not isinstance(other, Histogram):
            return NotImplemented
        if self.bins != other.bins:
            return False
        if (self.outliers is None) != (other.outliers is None):
            return False
        if self.outliers is not None and not _array_equal(
            as_content(self.outliers), as_content(other.outliers)
        ):
            return False
        return _array_equal(self.content, other.content)

    def __len__(self) -> int:
        return self.content.shape[0]

    def __getitem__(self, index: int) -> ty.Any:
        """Content of the bin at ``index``.

        Raises
        ------
        IndexOutOfBounds
            If ``index`` is negative, or not lower than the number of
            bins.
        """
        index = op.index(index)
        if not (0 <= index < len(self)):
            raise IndexOutOfBounds(
                f"Bin index {index} outside of bins [0, {len(self)})."
            )
        return _as_python(self.content[index])

    def _table_info(self) -> ty.List[ty.List[ty.Any]]:
        info = [
            ["bins", self.bins],
            ["n_bins", self.bins.n_bins],
            ["underflows", self.underflows],
            ["overflows", self.overflows],
            ["dtype", self.content.dtype],
        ]
        if np.issubdtype(self.content.dtype, np.number):
            info.append(["total", self.total])
        return info

    def __repr__(self) -> str:
        table = tabulate(self._table_info(), tablefmt="simple")
        return "Histogram\n" + table

    def _repr_html_(self) -> str:
        table = tabulate(self._table_info(), tablefmt="html")
        return "Histogram<br />" + table

    @property
    def underflows(self) -> ty.Any:
        """Underflow content, or ``None`` if not tracked."""
        if self.outliers is None:
            return None
        return self.outliers[0]

    @property
    def overflows(self) -> ty.Any:
        """Overflow content, or ``None`` if not tracked."""
        if self.outliers is None:
            return None
        return self.outliers[1]

    @property
    def total(self) -> ty.Any:
        """Sum of the contents of all bins, including underflows and
        overflows when they are tracked.
        """
        total = self.content.sum()
        if self.outliers is not None:
            total = total + self.outliers[0] + self.outliers[1]
        return _as_python(total)

    def bin_values(self) -> ty.List[ty.Any]:
        """Representative value of every bin, in index order."""
        return list(map(self.bins.from_index, range(self.bins.n_bins)))

    def items(self) -> ty.List[ty.Tuple[ty.Any, ty.Any]]:
        """Pairs of bin value and bin content, in index order."""
        return list(zip(self.bin_values(), self.content.tolist()))

    def midpoints(self) -> base.DoubleVector:
        """Representative values of the bins, as a float array."""
        return np.array(self.bin_values(), dtype=np.float64)

    def bin_sizes(self) -> base.DoubleVector:
        """Width of every bin.

        Raises
        ------
        TypeError
            If the binning strategy does not report bin widths.
        """
        if not isinstance(self.bins, base.VariableBin):
            raise TypeError(
                f"{type(self.bins).__name__} does not provide bin sizes."
            )
        sizes = map(self.bins.bin_size, range(self.bins.n_bins))
        return np.fromiter(sizes, dtype=np.float64, count=self.bins.n_bins)

    def density(self) -> base.DoubleVector:
        """Probability density of the histogram, normalised by the
        total count of the histogram and the width of each bin.

        Warns
        -----
        UserWarning
            If the histogram is empty, in which case the density is
            zero everywhere.
        """
        total = self.total
        if total == 0:
            warnings.warn("Density of an empty histogram is set to zero.")
            return np.zeros(len(self), dtype=np.float64)
        content = self.content.astype(np.float64)
        return content / (total * self.bin_sizes())

    def map(self, func: ty.Callable[[ty.Any], ty.Any]) -> "Histogram":
        """Applies ``func`` to every bin content, and separately to the
        underflow and overflow contents.
        """
        outliers = None
        if self.outliers is not None:
            outliers = (func(self.outliers[0]), func(self.outliers[1]))
        content = as_content(map(func, self.content.tolist()))
        return Histogram(self.bins, content, outliers)

    def map_with_values(
        self, func: ty.Callable[[ty.Any, ty.Any], ty.Any]
    ) -> "Histogram":
        """Applies ``func(bin_value, content)`` to every bin. Underflows
        and overflows are dropped.
        """
        content = as_content(it.starmap(func, self.items()))
        return Histogram(self.bins, content)

    def map_content(
        self, func: ty.Callable[[base.AnyVector], ty.Iterable[ty.Any]]
    ) -> "Histogram":
        """Applies ``func`` to the whole content array. Underflows and
        overflows are dropped.

        Raises
        ------
        ShapeMismatch
            If ``func`` changes the number of elements.
        """
        return Histogram(self.bins, as_content(func(self.content)))

    def map_bins(
        self, func: ty.Callable[[base.BinLike], base.BinLike]
    ) -> "Histogram":
        """Replaces the binning strategy with ``func(bins)``, keeping
        the contents.

        Raises
        ------
        ShapeMismatch
            If ``func`` changes the number of bins.
        """
        bins = func(self.bins)
        if bins.n_bins != self.bins.n_bins:
            raise ShapeMismatch(
                f"Binning maps {self.bins.n_bins} bins onto {bins.n_bins}."
            )
        return Histogram(bins, self.content, self.outliers)

    def convert(self, dtype: npt.DTypeLike) -> "Histogram":
        """Copy of the histogram with contents stored as ``dtype``."""
        outliers = None
        if self.outliers is not None:
            outliers = tuple(as_content(self.outliers, dtype).tolist())
        return Histogram(
            self.bins, as_content(self.content.tolist(), dtype), outliers
        )

    def zip_safe(
        self, func: ty.Callable[[ty.Any, ty.Any], ty.Any], other: "Histogram"
    ) -> ty.Optional["Histogram"]:
        """Combines the contents of two histograms elementwise with
        ``func``. Out of range contents are combined if both histograms
        track them, and dropped otherwise.

        Returns
        -------
        Histogram, optional
            Combined histogram, or ``None`` if the binning strategies
            are not equal.
        """
        if self.bins != other.bins:
            return None
        outliers = None
        if self.outliers is not None and other.outliers is not None:
            outliers = tuple(map(func, self.outliers, other.outliers))
        pairs = zip(self.content.tolist(), other.content.tolist())
        content = as_content(it.starmap(func, pairs))
        return Histogram(self.bins, content, outliers)

    def zip(
        self, func: ty.Callable[[ty.Any, ty.Any], ty.Any], other: "Histogram"
    ) -> "Histogram":
        """As ``zip_safe()``, but raises on mismatched strategies.

        Raises
        ------
        ShapeMismatch
            If the binning strategies are not equal.
        """
        hist = self.zip_safe(func, other)
        if hist is None:
            raise ShapeMismatch(
                f"Bins are different: {self.bins} and {other.bins}."
            )
        return hist

    def fold(
        self, func: ty.Callable[[ty.Any, ty.Any], ty.Any], init: ty.Any
    ) -> ty.Any:
        """Left fold over the bin contents in index order. Underflows
        and overflows are ignored.
        """
        return fn.reduce(func, self.content.tolist(), init)

    def fold_with_values(
        self, func: ty.Callable[[ty.Any, ty.Any, ty.Any], ty.Any], init: ty.Any
    ) -> ty.Any:
        """Left fold in index order, calling
        ``func(accumulated, bin_value, content)``. Underflows and
        overflows are ignored.
        """
        acc = init
        for val, content in self.items():
            acc = func(acc, val, content)
        return acc

    def slice_by_index(self, start: int, stop: int) -> "Histogram":
        """Restricts the histogram to the bins in the inclusive index
        range ``[start, stop]``. The content is a view onto this
        histogram's memory. Underflows and overflows are dropped.

        Raises
        ------
        TypeError
            If the binning strategy can not be sliced.
        IndexOutOfBounds
            If the bounds are not ``0 <= start <= stop < n_bins``.
        """
        if not isinstance(self.bins, base.SliceableBin):
            raise TypeError(f"{type(self.bins).__name__} can not be sliced.")
        bins = self.bins.slice_bin(start, stop)
        return Histogram(bins, self.content[start : stop + 1])

    def slice_by_value(self, lo: ty.Any, hi: ty.Any) -> "Histogram":
        """Restricts the histogram to the bins holding the values from
        ``lo`` to ``hi``, inclusive.

        Raises
        ------
        IndexOutOfBounds
            If either value is out of the range of the bins.
        """
        bins = self.bins
        if not (bins.in_range(lo) and bins.in_range(hi)):
            raise IndexOutOfBounds(
                f"Values {lo} and {hi} must both be in range of {bins}."
            )
        return self.slice_by_index(bins.to_index(lo), bins.to_index(hi))

    def _bins_2d(self) -> Bin2D:
        if not isinstance(self.bins, Bin2D):
            raise TypeError(
                "Operation requires 2D bins, histogram has "
                f"{type(self.bins).__name__}."
            )
        return self.bins

    def slice_along(self, axis: base.Axis, index: int) -> "Histogram":
        """One-dimensional slice of a 2D histogram.

        Parameters
        ----------
        axis : {"x", "y"}
            Axis spanned by the output. If ``"x"``, ``index`` is fixed
            along the y axis, and vice versa.
        index : int
            Bin index along the other axis.

        Returns
        -------
        Histogram
            Histogram over the bins of ``axis``. Its content is a view
            onto this histogram's memory.

        Raises
        ------
        TypeError
            If the histogram does not have 2D bins.
        ValueError
            If ``axis`` is not ``"x"`` or ``"y"``.
        IndexOutOfBounds
            If ``index`` is out of the range of the other axis.
        """
        bins = self._bins_2d()
        nx, ny = bins.n_bins_x, bins.n_bins_y
        if axis == "x":
            if not (0 <= index < ny):
                raise IndexOutOfBounds(f"Bad index {index} along y axis.")
            row = self.content[nx * index : nx * (index + 1)]
            return Histogram(bins.x, row)
        if axis == "y":
            if not (0 <= index < nx):
                raise IndexOutOfBounds(f"Bad index {index} along x axis.")
            return Histogram(bins.y, self.content[index::nx])
        raise ValueError(f"axis must be 'x' or 'y', received {axis!r}.")

    def slices_x(self) -> ty.List[ty.Tuple[ty.Any, "Histogram"]]:
        """Pairs of x axis bin value and histogram along y, for every
        position along the x axis.
        """
        bins = self._bins_2d()
        return [
            (bins.x.from_index(ix), self.slice_along("y", ix))
            for ix in range(bins.n_bins_x)
        ]

    def slices_y(self) -> ty.List[ty.Tuple[ty.Any, "Histogram"]]:
        """Pairs of y axis bin value and histogram along x, for every
        position along the y axis.
        """
        bins = self._bins_2d()
        return [
            (bins.y.from_index(iy), self.slice_along("x", iy))
            for iy in range(bins.n_bins_y)
        ]

    def reduce_along(
        self, axis: base.Axis, func: ty.Callable[["Histogram"], ty.Any]
    ) -> "Histogram":
        """Collapses ``axis`` of a 2D histogram, by applying ``func`` to
        each slice along it. Underflows and overflows are dropped.

        Parameters
        ----------
        axis : {"x", "y"}
            Axis to reduce.
        func : callable
            Reduction of a one-dimensional histogram along ``axis``.

        Returns
        -------
        Histogram
            Histogram over the remaining axis.
        """
        bins = self._bins_2d()
        nx, ny = bins.n_bins_x, bins.n_bins_y
        if axis == "x":
            reduced = map(fn.partial(self.slice_along, "x"), range(ny))
            return Histogram(bins.y, as_content(map(func, reduced)))
        if axis == "y":
            reduced = map(fn.partial(self.slice_along, "y"), range(nx))
            return Histogram(bins.x, as_content(map(func, reduced)))
        raise ValueError(f"axis must be 'x' or 'y', received {axis!r}.")

    def to_text(self) -> str:
        """Serialises the histogram into its textual format."""
        from . import textio

        return textio.encode_histogram(self)

    @classmethod
    def from_text(
        cls,
        text: str,
        dtype: npt.DTypeLike = np.float64,
        deindex: ty.Optional[ty.Callable[[int], ty.Any]] = None,
    ) -> tyx.Self:
        """Instantiates a histogram from the output of ``to_text()``.
        See ``histoscope.textio.decode_histogram()`` for parameters.
        """
        from . import textio

        return textio.decode_histogram(text, dtype=dtype, deindex=deindex)

    def to_file(
        self,
        fname: ty.Union[str, Path, io.IOBase],
        encoding: str = "utf-8",
    ) -> None:
        """Stores the textual format of the histogram in ``fname``. If
        ``gzip`` compression is desired, use the ``".gz"`` extension.
        """
        from . import textio

        textio.write_histogram(self, fname, encoding=encoding)

    @classmethod
    def from_file(
        cls,
        fname: ty.Union[str, Path, io.IOBase],
        dtype: npt.DTypeLike = np.float64,
        encoding: str = "utf-8",
        deindex: ty.Optional[ty.Callable[[int], ty.Any]] = None,
    ) -> tyx.Self:
        """Instantiates a histogram stored with ``to_file()``."""
        from . import textio

        return textio.read_histogram(
            fname, dtype=dtype, encoding=encoding, deindex=deindex
        )


def histogram(bins: base.BinLike, content: ty.Iterable[ty.Any]) -> Histogram:
    """Creates a histogram without underflows and overflows.

    :group: data

    Raises
    ------
    ShapeMismatch
        If ``content`` does not hold ``bins.n_bins`` elements.
    """
    return Histogram(bins, content)


def histogram_with_overflow(
    bins: base.BinLike,
    outliers: ty.Optional[ty.Tuple[ty.Any, ty.Any]],
    content: ty.Iterable[ty.Any],
) -> Histogram:
    """Creates a histogram with ``outliers`` as the underflow and
    overflow contents.

    :group: data

    Raises
    ------
    ShapeMismatch
        If ``content`` does not hold ``bins.n_bins`` elements.
    """
    return Histogram(bins, content, outliers)

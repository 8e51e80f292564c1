"""
``histoscope.accumulate``
=========================

Accumulators, allowing a single pass over a sequence of values to fill
any number of histograms, each extracting its own result.
"""
import abc
import logging as lg
import operator as op
import typing as ty

from . import base
from .histogram import Histogram
from .mutable import MutableHistogram

__all__ = [
    "Accumulator",
    "HistogramAccumulator",
    "AccumulatorList",
    "HISTOGRAM_SUM",
    "accum_hist",
    "accum_list",
    "put_weighted",
    "run_fill",
]


def _add_histograms(
    lhs: ty.Optional[Histogram], rhs: ty.Optional[Histogram]
) -> ty.Optional[Histogram]:
    if lhs is None:
        return rhs
    if rhs is None:
        return lhs
    return lhs.zip(op.add, rhs)


HISTOGRAM_SUM = base.Monoid(None, _add_histograms)


class Accumulator(abc.ABC):
    """Interface for anything which accepts values one at a time, and
    produces a result once all values have been passed.

    :group: accumulate
    """

    @abc.abstractmethod
    def put_one(self, value: ty.Any) -> None:
        """Passes one value into the accumulator."""

    @abc.abstractmethod
    def extract(self) -> ty.Any:
        """Result of the accumulation."""

    def put_many(self, values: ty.Iterable[ty.Any]) -> None:
        for val in values:
            self.put_one(val)


def put_weighted(
    builder: MutableHistogram, pair: ty.Tuple[ty.Any, ty.Any]
) -> None:
    """Fills a ``(value, weight)`` pair into ``builder``."""
    value, weight = pair
    builder.fill_weighted(value, weight)


class HistogramAccumulator(Accumulator):
    """Accumulator filling a ``MutableHistogram``.

    :group: accumulate

    Parameters
    ----------
    builder : MutableHistogram
        Histogram being filled.
    put : callable, optional
        Called as ``put(builder, value)`` for every value. Default is
        ``MutableHistogram.fill``.
    extract : callable, optional
        Called with the frozen histogram to produce the result. Default
        returns the histogram itself.
    """

    def __init__(
        self,
        builder: MutableHistogram,
        put: ty.Optional[ty.Callable[[MutableHistogram, ty.Any], None]] = None,
        extract: ty.Optional[ty.Callable[[Histogram], ty.Any]] = None,
    ) -> None:
        self.builder = builder
        self._put = MutableHistogram.fill if put is None else put
        self._extract = extract

    def put_one(self, value: ty.Any) -> None:
        self._put(self.builder, value)

    def extract(self) -> ty.Any:
        hist = self.builder.freeze()
        if self._extract is None:
            return hist
        return self._extract(hist)


class AccumulatorList(Accumulator):
    """Accumulator forwarding every value to each of its children, in
    order. The result is the combination of the children's results,
    in order, under ``monoid``.

    :group: accumulate

    Parameters
    ----------
    children : iterable[Accumulator]
        Accumulators to drive.
    monoid : Monoid
        Identity and associative operation used to combine the results.
    """

    def __init__(
        self, children: ty.Iterable[Accumulator], monoid: base.Monoid
    ) -> None:
        self.children = list(children)
        self.monoid = monoid

    def put_one(self, value: ty.Any) -> None:
        for child in self.children:
            child.put_one(value)

    def extract(self) -> ty.Any:
        return self.monoid.concat(child.extract() for child in self.children)


def accum_hist(
    builder: MutableHistogram,
    put: ty.Optional[ty.Callable[[MutableHistogram, ty.Any], None]] = None,
    extract: ty.Optional[ty.Callable[[Histogram], ty.Any]] = None,
) -> HistogramAccumulator:
    """Wraps ``builder`` as an ``Accumulator``.

    :group: accumulate
    """
    return HistogramAccumulator(builder, put, extract)


def accum_list(
    children: ty.Iterable[Accumulator], monoid: base.Monoid = base.TUPLE
) -> AccumulatorList:
    """Combines ``children`` into a single ``Accumulator``. The default
    ``monoid`` concatenates tuples, so children whose results are
    one-element tuples produce a tuple with one result per child.

    :group: accumulate
    """
    return AccumulatorList(children, monoid)


def run_fill(
    factory: ty.Callable[[], Accumulator], values: ty.Iterable[ty.Any]
) -> ty.Any:
    """Creates an accumulator with ``factory``, passes every element of
    ``values`` into it once, in order, and returns its result.

    :group: accumulate

    Parameters
    ----------
    factory : callable
        Function returning a fresh ``Accumulator``.
    values : iterable
        Values to accumulate. Traversed once, so may be a generator.

    Returns
    -------
    Any
        Result of ``Accumulator.extract()``.

    Examples
    --------
    Filling two histograms in one pass.

        >>> import histoscope as hsc
        ...
        >>> def factory():
        ...     return hsc.accum_list([
        ...         hsc.accum_hist(
        ...             hsc.new_builder(0, hsc.bin_i(0, 3)),
        ...             extract=lambda h: (h,),
        ...         ),
        ...         hsc.accum_hist(
        ...             hsc.new_builder(0, hsc.bin_f(0.0, 2, 4.0)),
        ...             extract=lambda h: (h,),
        ...         ),
        ...     ])
        >>> ints, floats = hsc.run_fill(factory, [1, 2, 3])
        >>> ints.content
        array([0, 1, 1, 1])
        >>> floats.content
        array([1, 2])
    """
    acc = factory()
    count = 0
    for val in values:
        acc.put_one(val)
        count += 1
    lg.debug(f"Accumulated {count} values")
    return acc.extract()

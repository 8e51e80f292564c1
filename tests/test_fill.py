import operator as op
import random

import numpy as np
import pytest

import histoscope as hsc


def test_fill_routes_outliers() -> None:
    builder = hsc.new_builder(0, hsc.bin_f(0.0, 10, 10.0))
    for val in (0.5, 1.5, 9.9, -1.0, 10.5):
        builder.fill(val)
    hist = builder.freeze()
    expected = [1, 1, 0, 0, 0, 0, 0, 0, 0, 1]
    assert hist.content.tolist() == expected
    assert hist.outliers == (1, 1), "Out of range values not tracked."
    assert hist.total == 5


def test_fill_random_misses() -> None:
    rng = np.random.default_rng()
    num_bins = random.randint(20, 1000)
    lo, hi = random.uniform(-50.0, 0.0), random.uniform(1.0, 1000.0)
    builder = hsc.new_builder(0, hsc.bin_f(lo, num_bins, hi))
    builder.fill_many(rng.uniform(lo, hi, size=976))
    builder.fill_many(rng.uniform(hi, 5000.0, size=13))
    builder.fill_many(rng.uniform(-1000.0, lo, size=11))
    hist = builder.freeze()
    assert hist.underflows == 11, "Number of underflows not consistent."
    assert hist.overflows == 13, "Number of overflows not consistent."
    assert hist.total == 1_000, "Total number of fills incorrect."


def test_freeze_empty() -> None:
    builder = hsc.new_builder(0, hsc.bin_i(0, 3))
    assert builder.state is hsc.BuilderState.BUILDING
    hist = builder.freeze()
    assert builder.is_frozen
    assert hist.content.tolist() == [0, 0, 0, 0]
    assert hist.outliers == (0, 0)


def test_freeze_is_one_shot() -> None:
    builder = hsc.new_builder(0, hsc.bin_i(0, 3))
    builder.fill(1)
    hist = builder.freeze()
    assert not np.shares_memory(hist.content, builder._content)
    with pytest.raises(hsc.BuilderFrozen):
        builder.freeze()
    with pytest.raises(hsc.BuilderFrozen):
        builder.fill(2)
    with pytest.raises(hsc.BuilderFrozen):
        builder.fill_monoid(2, 1)
    assert hist.content.tolist() == [0, 1, 0, 0]


def test_fill_weighted() -> None:
    builder = hsc.new_builder(0.0, hsc.bin_i(0, 2))
    builder.fill_weighted(1, 0.5)
    builder.fill_weighted(1, 0.5)
    builder.fill_many([0, 2, 5], weights=[1.0, 2.0, 3.0])
    hist = builder.freeze()
    assert hist.content.tolist() == [1.0, 1.0, 2.0]
    assert hist.outliers == (0.0, 3.0)


def test_fill_monoid() -> None:
    builder = hsc.new_builder((), hsc.bin_i(0, 1))
    assert builder.dtype == np.dtype(object)
    builder.fill_monoid(0, ("a",))
    builder.fill_monoid(0, ("b",))
    builder.fill_monoid(-5, ("u",))
    builder.fill_monoid(7, ("o",))
    hist = builder.freeze()
    assert hist[0] == ("a", "b"), "Elements must combine in fill order."
    assert hist[1] == ()
    assert hist.underflows == ("u",), "Underflow landed in wrong cell."
    assert hist.overflows == ("o",)


def test_fill_errors_propagate() -> None:
    builder = hsc.new_builder(0, hsc.bin_i(0, 1))
    with pytest.raises(TypeError):
        builder.fill_weighted(0, "heavy")

    def explode(lhs, rhs):
        raise ZeroDivisionError("combine failed")

    with pytest.raises(ZeroDivisionError):
        builder.fill_monoid(1, 1, combine=explode)


def test_repr() -> None:
    builder = hsc.new_builder(0, hsc.bin_i(0, 1))
    assert "building" in repr(builder)
    builder.freeze()
    assert "frozen" in repr(builder)


def as_single(hist: hsc.Histogram) -> tuple:
    return (hist,)


def test_run_fill_fan_out() -> None:
    ints, floats = hsc.bin_i(0, 3), hsc.bin_f(0.0, 2, 4.0)

    def factory() -> hsc.Accumulator:
        return hsc.accum_list(
            [
                hsc.accum_hist(hsc.new_builder(0, ints), extract=as_single),
                hsc.accum_hist(hsc.new_builder(0, floats), extract=as_single),
            ]
        )

    values = [1, 2, 3]
    result = hsc.run_fill(factory, (val for val in values))
    assert len(result) == 2
    for bins, hist in zip((ints, floats), result):
        builder = hsc.new_builder(0, bins)
        builder.fill_many(values)
        assert hist == builder.freeze(), "Fan-out differs from lone fill."
    assert result[0].content.tolist() == [0, 1, 1, 1]
    assert result[1].content.tolist() == [1, 2]


def test_run_fill_single() -> None:
    bins = hsc.bin_i(0, 9)

    def factory() -> hsc.Accumulator:
        return hsc.accum_hist(hsc.new_builder(0, bins))

    hist = hsc.run_fill(factory, [1, 1, 20])
    assert hist[1] == 2
    assert hist.overflows == 1


def test_run_fill_monoids() -> None:
    bins = hsc.bin_i(0, 2)

    def summed() -> hsc.Accumulator:
        children = [hsc.accum_hist(hsc.new_builder(0, bins)) for _ in "ab"]
        return hsc.accum_list(children, hsc.HISTOGRAM_SUM)

    hist = hsc.run_fill(summed, [0, 1, 1, 4])
    assert hist.content.tolist() == [2, 4, 0]
    assert hist.outliers == (0, 2)

    def totals() -> hsc.Accumulator:
        children = [
            hsc.accum_hist(
                hsc.new_builder(0, bins), extract=op.attrgetter("total")
            )
            for _ in range(3)
        ]
        return hsc.accum_list(children, hsc.SUM)

    assert hsc.run_fill(totals, [0, 1, 7]) == 9

    def listed() -> hsc.Accumulator:
        children = [
            hsc.accum_hist(
                hsc.new_builder(0, bins), extract=lambda h: [h.total]
            )
            for _ in range(2)
        ]
        return hsc.accum_list(children, hsc.LIST_CONCAT)

    assert hsc.run_fill(listed, [0, 1]) == [2, 2]


def test_nested_accumulators() -> None:
    bins = hsc.bin_i(0, 1)

    def single() -> hsc.Accumulator:
        return hsc.accum_hist(hsc.new_builder(0, bins), extract=as_single)

    def factory() -> hsc.Accumulator:
        return hsc.accum_list([hsc.accum_list([single(), single()]), single()])

    result = hsc.run_fill(factory, [0, 1, 1])
    assert len(result) == 3, "Nested results must be flattened by TUPLE."
    assert all(hist.content.tolist() == [1, 2] for hist in result)


def test_empty_accumulator_list() -> None:
    result = hsc.run_fill(lambda: hsc.accum_list([]), [1, 2, 3])
    assert result == (), "No children must give the monoid identity."


def test_put_weighted() -> None:
    bins = hsc.bin_f(0.0, 2, 2.0)

    def factory() -> hsc.Accumulator:
        builder = hsc.new_builder(0.0, bins)
        return hsc.accum_hist(builder, put=hsc.put_weighted)

    hist = hsc.run_fill(factory, [(0.5, 2.0), (1.5, 0.25), (3.0, 1.0)])
    assert hist.content.tolist() == [2.0, 0.25]
    assert hist.overflows == 1.0


class Counter(hsc.Accumulator):
    def __init__(self) -> None:
        self.count = 0

    def put_one(self, value) -> None:
        self.count += 1

    def extract(self) -> tuple:
        return (self.count,)


def test_custom_accumulator() -> None:
    with pytest.raises(TypeError):
        hsc.Accumulator()

    def factory() -> hsc.Accumulator:
        hist = hsc.accum_hist(
            hsc.new_builder(0, hsc.bin_i(0, 1)), extract=as_single
        )
        return hsc.accum_list([Counter(), hist])

    count, hist = hsc.run_fill(factory, range(5))
    assert count == 5
    assert hist.overflows == 3


def test_fill_weighted_promotes_storage() -> None:
    builder = hsc.new_builder(0, hsc.bin_i(0, 1))
    builder.fill(1)
    assert np.issubdtype(builder.dtype, np.integer), "Unit fills promoted."
    builder.fill_weighted(0, 0.5)
    builder.fill_weighted(0, 0.25)
    builder.fill_weighted(5, 0.5)
    assert np.issubdtype(builder.dtype, np.floating)
    hist = builder.freeze()
    assert hist[0] == 0.75, "Fractional weights were truncated."
    assert hist[1] == 1.0
    assert hist.outliers == (0.0, 0.5)
    single = hsc.new_builder(np.float32(0.0), hsc.bin_i(0, 1))
    single.fill_weighted(1, 0.5)
    assert single.dtype == np.float32, "Same kind weights must not promote."
    complex_ = hsc.new_builder(0.0, hsc.bin_i(0, 1))
    complex_.fill_weighted(0, 1j)
    assert complex_.freeze()[0] == 1j
    counts = hsc.new_builder(False, hsc.bin_i(0, 1))
    counts.fill_many([0, 0, 1])
    assert counts.freeze().content.tolist() == [2, 1]

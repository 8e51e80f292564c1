import enum
import io
import random

import numpy as np
import pytest

import histoscope as hsc


class Colour(enum.IntEnum):
    RED = 3
    GREEN = 4
    BLUE = 5


def create_hist1d(total: int, num_misses: int) -> hsc.Histogram:
    if total < num_misses:
        raise ValueError("Cannot create more misses than there are values!")
    num_bins = random.randint(20, 1000)
    window = (random.uniform(-50.0, 0.0), random.uniform(1.0, 1000.0))
    builder = hsc.new_builder(0.0, hsc.bin_f(window[0], num_bins, window[1]))
    rng = np.random.default_rng()
    builder.fill_many(rng.uniform(*window, size=(total - num_misses)))
    lo_misses = num_misses // 2
    hi_misses = num_misses - lo_misses
    builder.fill_many(rng.uniform(window[1], 5000.0, size=hi_misses))
    builder.fill_many(rng.uniform(-1000.0, window[0], size=lo_misses))
    return builder.freeze()


def create_hist2d(total: int) -> hsc.Histogram:
    nbinx, nbiny = random.randint(2, 40), random.randint(2, 40)
    winx = (random.uniform(-50.0, 0.0), random.uniform(1.0, 1000.0))
    bins = hsc.bin_2d(hsc.bin_f(winx[0], nbinx, winx[1]), hsc.bin_i(0, nbiny))
    builder = hsc.new_builder(0, bins)
    rng = np.random.default_rng()
    xs = rng.uniform(*winx, size=total)
    ys = rng.integers(0, nbiny, size=total, endpoint=True)
    builder.fill_many(zip(xs.tolist(), ys.tolist()))
    return builder.freeze()


def test_text_format() -> None:
    hist = hsc.histogram_with_overflow(hsc.bin_f(0.0, 2, 1.0), (1, 0), [3, 5])
    expected = (
        "# Histogram\n"
        "# Underflows = 1\n"
        "# Overflows  = 0\n"
        "# BinF\n"
        "# Lo = 0.0\n"
        "# N  = 2\n"
        "# Hi = 1.0\n"
        "0.25\t3\n"
        "0.75\t5\n"
    )
    assert hist.to_text() == expected, "Textual format changed."
    assert hsc.decode_histogram(expected, dtype=np.int64) == hist


def test_text_format_no_outliers() -> None:
    hist = hsc.histogram(hsc.bin_i(-1, 0), [7, 8])
    text = hsc.encode_histogram(hist)
    assert "# Underflows = \n" in text
    decoded = hsc.Histogram.from_text(text, dtype=np.int64)
    assert decoded.outliers is None
    assert decoded == hist


def test_hist_text_inversion() -> None:
    hist1d = create_hist1d(100, 3)
    assert hist1d.underflows == 1 and hist1d.overflows == 2
    hist1d_read = hsc.Histogram.from_text(hist1d.to_text())
    assert hist1d == hist1d_read, "1D histogram changed by text round trip."
    hist2d = create_hist2d(500)
    hist2d_read = hsc.Histogram.from_text(hist2d.to_text(), dtype=np.int64)
    assert hist2d == hist2d_read, "2D histogram changed by text round trip."


@pytest.mark.parametrize(
    "bins",
    [
        hsc.bin_i(-3, 4),
        hsc.bin_int(-10, 3, 12),
        hsc.bin_f(-1.5, 7, 2.25),
        hsc.log_bin_d(0.1, 6, 1000.0),
        hsc.log_bin_d(-2.0, 3, -0.02),
        hsc.log_bin_d(1.0, 0, 10.0),
        hsc.bin_2d(hsc.bin_int(0, 2, 6), hsc.log_bin_d(1.0, 2, 4.0)),
    ],
)
def test_bins_text_inversion(bins) -> None:
    assert hsc.decode_bins(hsc.encode_bins(bins)) == bins
    content = np.arange(bins.n_bins, dtype=np.float64) / 3.0
    hist = hsc.histogram_with_overflow(bins, (0.5, 1.0 / 7.0), content)
    assert hsc.decode_histogram(hsc.encode_histogram(hist)) == hist


def test_bin_ix_text_inversion() -> None:
    bins = hsc.bin_ix(Colour.RED, Colour.BLUE)
    text = hsc.encode_bins(bins)
    assert "# Low  = 3\n" in text, "Indexable values must be written as ints."
    decoded = hsc.decode_bins(text, deindex=Colour)
    assert decoded == bins
    assert decoded.from_index(1) is Colour.GREEN
    plain = hsc.decode_bins(text)
    assert plain.from_index(1) == 4
    hist = hsc.histogram(bins, [1, 2, 3])
    hist_read = hsc.Histogram.from_text(
        hist.to_text(), dtype=np.int64, deindex=Colour
    )
    assert hist_read == hist
    assert hist_read.bin_values() == list(Colour)


def test_file_inversion(tmp_path) -> None:
    hist = create_hist1d(200, 10)
    for name in ("hist.txt", "hist.txt.gz"):
        path = tmp_path / name
        hist.to_file(path)
        assert hsc.Histogram.from_file(path) == hist, f"{name} changed."
        assert hsc.read_histogram(str(path)) == hist
    buffer = io.StringIO()
    hsc.write_histogram(hist, buffer)
    assert hsc.read_histogram(buffer) == hist
    raw = io.BytesIO()
    hist.to_file(raw)
    assert hsc.Histogram.from_file(raw) == hist


def test_unknown_bins_not_encodable() -> None:
    class Halves:
        n_bins = 2

        def to_index(self, value):
            return int(2 * value)

        def from_index(self, index):
            return index / 2

        def in_range(self, value):
            return 0 <= self.to_index(value) < 2

    with pytest.raises(TypeError):
        hsc.encode_bins(Halves())


VALID = hsc.histogram_with_overflow(
    hsc.bin_f(0.0, 2, 1.0), (1, 0), [3, 5]
).to_text()


@pytest.mark.parametrize(
    "text",
    [
        "",
        VALID.replace("# Histogram", "# Hist"),
        VALID.replace("# Overflows  = 0", "# Overflows  ="),
        VALID.replace("# Underflows = 1", "# Underflows = one"),
        VALID.replace("# BinF", "# BinQ"),
        VALID.replace("# N  = 2", "# N  = -2"),
        VALID.replace("# N  = 2", "# N  = two"),
        VALID.replace("# Lo = 0.0", "# Low = 0.0"),
        VALID.replace("0.25\t3", "0.2\t3"),
        VALID.replace("0.25\t3", "0.25 3"),
        VALID.replace("0.75\t5", "0.75\tfive"),
        VALID.replace("0.75\t5\n", ""),
        VALID + "1.25\t0\n",
        VALID.split("# BinF")[0],
    ],
)
def test_malformed_histogram(text) -> None:
    with pytest.raises(hsc.ParseError):
        hsc.decode_histogram(text)


def test_malformed_bins() -> None:
    text = hsc.encode_bins(hsc.bin_i(0, 4))
    with pytest.raises(hsc.ParseError):
        hsc.decode_bins(text + "0\t1\n")
    with pytest.raises(hsc.ParseError):
        hsc.decode_bins(text.replace("4", "-1"))
    with pytest.raises(hsc.ParseError):
        hsc.decode_bins("# Bin2D\n# Y\n" + text)
    with pytest.raises(hsc.ParseError):
        hsc.decode_bins("not a header\n")


def test_bool_text_inversion() -> None:
    hist = hsc.histogram_with_overflow(
        hsc.bin_i(0, 2), (False, True), [True, False, False]
    )
    text = hist.to_text()
    hist_read = hsc.Histogram.from_text(text, dtype=bool)
    assert hist_read == hist, "Bool contents changed by text round trip."
    assert hist_read.content.tolist() == [True, False, False]
    with pytest.raises(hsc.ParseError):
        hsc.decode_histogram(text.replace("0\tTrue", "0\tyes"), dtype=bool)
    with pytest.raises(hsc.ParseError):
        hsc.decode_histogram(text.replace("1\tFalse", "1\t0"), dtype=bool)


def test_nan_text_inversion() -> None:
    nan = float("nan")
    hist = hsc.histogram_with_overflow(hsc.bin_i(0, 1), (nan, 0.0), [nan, 1.0])
    assert hsc.Histogram.from_text(hist.to_text()) == hist

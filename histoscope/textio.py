"""
``histoscope.textio``
=====================

Textual format of histograms and binning strategies. A histogram is
written as a header, followed by one tab separated line per bin::

    # Histogram
    # Underflows = 1
    # Overflows  = 0
    # BinF
    # Lo = 0.0
    # N  = 2
    # Hi = 1.0
    0.25	3
    0.75	5

Decoding is strict: any deviation from the format raises ``ParseError``.
"""
import gzip as gz
import io
import logging as lg
import re
import typing as ty
from pathlib import Path

import more_itertools as mit
import numpy as np
import numpy.typing as npt

from . import base
from .bins import BIN_TYPES, Bin2D, format_scalar
from .errors import ConstructionError, ParseError
from .histogram import Histogram, as_content

__all__ = [
    "encode_bins",
    "decode_bins",
    "encode_histogram",
    "decode_histogram",
    "write_histogram",
    "read_histogram",
]


_KEYWORD = re.compile(r"^#\s*(\w+)\s*$")
_FIELD = re.compile(r"^#\s*(\w+)\s*=(.*)$")
_BOOLS = {"True": True, "False": False}

Deindex = ty.Optional[ty.Callable[[int], ty.Any]]


def _bin_lines(bins: base.BinLike) -> ty.Iterator[str]:
    keyword = getattr(type(bins), "keyword", None)
    if keyword not in BIN_TYPES:
        raise TypeError(f"{type(bins).__name__} has no textual format.")
    yield f"# {keyword}"
    if isinstance(bins, Bin2D):
        yield "# X"
        yield from _bin_lines(bins.x)
        yield "# Y"
        yield from _bin_lines(bins.y)
        return
    width = max(map(len, bins.header_labels))
    for label, val in zip(bins.header_labels, bins.header_values()):
        yield f"# {label.ljust(width)} = {format_scalar(val)}"


def encode_bins(bins: base.BinLike) -> str:
    """Textual format of a binning strategy.

    :group: io

    Raises
    ------
    TypeError
        If ``bins`` is not one of the package's strategies.
    """
    return "".join(f"{line}\n" for line in _bin_lines(bins))


def _line_stream(text: str) -> "mit.peekable[str]":
    return mit.peekable(line for line in text.splitlines() if line.strip())


def _next_line(lines: "mit.peekable[str]", expected: str) -> str:
    try:
        return next(lines)
    except StopIteration:
        raise ParseError(f"Unexpected end of input, expected {expected}.")


def _keyword(
    lines: "mit.peekable[str]", expected: ty.Optional[str] = None
) -> str:
    line = _next_line(lines, expected or "a keyword")
    match = _KEYWORD.match(line)
    if match is None:
        raise ParseError(f"Expected a keyword line, found {line!r}.")
    if expected is not None and match[1] != expected:
        raise ParseError(f"Expected keyword {expected!r}, found {line!r}.")
    return match[1]


def _field(lines: "mit.peekable[str]", label: str) -> str:
    line = _next_line(lines, f"field {label!r}")
    match = _FIELD.match(line)
    if match is None or match[1] != label:
        raise ParseError(f"Expected field {label!r}, found {line!r}.")
    return match[2].strip()


def _read_bins(lines: "mit.peekable[str]", deindex: Deindex) -> base.BinLike:
    keyword = _keyword(lines)
    cls = BIN_TYPES.get(keyword)
    if cls is None:
        raise ParseError(f"Unknown binning {keyword!r}.")
    if cls is Bin2D:
        _keyword(lines, "X")
        bins_x = _read_bins(lines, deindex)
        _keyword(lines, "Y")
        bins_y = _read_bins(lines, deindex)
        return Bin2D(bins_x, bins_y)
    values = []
    for label, parse in zip(cls.header_labels, cls.header_parsers):
        text = _field(lines, label)
        try:
            values.append(parse(text))
        except ValueError as err:
            raise ParseError(
                f"Invalid value {text!r} for field {label!r} of {keyword}."
            ) from err
    try:
        return cls.from_header(*values, deindex=deindex)
    except ConstructionError as err:
        raise ParseError(f"Invalid {keyword} parameters: {err}") from err


def decode_bins(text: str, deindex: Deindex = None) -> base.BinLike:
    """Binning strategy from its textual format.

    :group: io

    Parameters
    ----------
    text : str
        Output of ``encode_bins()``.
    deindex : callable, optional
        Inverse of ``operator.index()`` for ``BinIx`` values. Default is
        ``int``.

    Raises
    ------
    ParseError
        If ``text`` is malformed, or holds anything after the strategy.
    """
    lines = _line_stream(text)
    bins = _read_bins(lines, deindex)
    if lines:
        raise ParseError(f"Trailing input after binning: {lines.peek()!r}.")
    return bins


def encode_histogram(hist: Histogram) -> str:
    """Textual format of a histogram.

    :group: io
    """
    under = over = ""
    if hist.outliers is not None:
        under, over = map(format_scalar, hist.outliers)
    bins = hist.bins
    lines = [
        "# Histogram",
        f"# Underflows = {under}",
        f"# Overflows  = {over}",
        *_bin_lines(bins),
    ]
    for idx, val in enumerate(hist.content.tolist()):
        label = bins.format_value(bins.from_index(idx))
        lines.append(f"{label}\t{format_scalar(val)}")
    return "".join(f"{line}\n" for line in lines)


def _scalar_parser(dtype: npt.DTypeLike) -> ty.Callable[[str], ty.Any]:
    scalar = np.dtype(dtype).type
    if scalar is np.bool_:

        def parse_bool(text: str) -> bool:
            try:
                return _BOOLS[text]
            except KeyError:
                raise ParseError(f"Can not read {text!r} as bool.") from None

        return parse_bool

    def parse(text: str) -> ty.Any:
        try:
            val = scalar(text)
        except (ValueError, TypeError, OverflowError) as err:
            raise ParseError(f"Can not read {text!r} as {dtype}.") from err
        return val.item() if isinstance(val, np.generic) else val

    return parse


def decode_histogram(
    text: str, dtype: npt.DTypeLike = np.float64, deindex: Deindex = None
) -> Histogram:
    """Histogram from its textual format.

    :group: io

    Parameters
    ----------
    text : str
        Output of ``encode_histogram()``.
    dtype : DTypeLike
        Numpy dtype of the contents. Default is ``numpy.float64``.
    deindex : callable, optional
        Inverse of ``operator.index()`` for ``BinIx`` values. Default is
        ``int``.

    Returns
    -------
    Histogram
        Decoded histogram.

    Raises
    ------
    ParseError
        If the header is malformed, only one of underflows and overflows
        is given, a bin value does not match the binning, a content can
        not be read as ``dtype``, or the number of data lines differs
        from the number of bins.
    """
    lines = _line_stream(text)
    parse = _scalar_parser(dtype)
    _keyword(lines, "Histogram")
    under, over = _field(lines, "Underflows"), _field(lines, "Overflows")
    if bool(under) != bool(over):
        raise ParseError("Underflows and overflows must be given together.")
    outliers = (parse(under), parse(over)) if under else None
    bins = _read_bins(lines, deindex)
    n_bins = bins.n_bins
    content = []
    for idx, line in enumerate(lines):
        if idx >= n_bins:
            raise ParseError(f"More data lines than the {n_bins} bins.")
        label, sep, val = line.rpartition("\t")
        if not sep:
            raise ParseError(f"Expected a tab separated data line: {line!r}.")
        expected = bins.format_value(bins.from_index(idx))
        if label != expected:
            raise ParseError(
                f"Bin {idx} has value {label!r}, expected {expected!r}."
            )
        content.append(parse(val.strip()))
    if len(content) != n_bins:
        raise ParseError(f"Found {len(content)} data lines for {n_bins} bins.")
    lg.debug(f"Decoded histogram with {n_bins} bins over {bins}")
    return Histogram(bins, as_content(content, dtype), outliers)


def write_histogram(
    hist: Histogram,
    fname: ty.Union[str, Path, io.IOBase],
    encoding: str = "utf-8",
) -> None:
    """Stores the textual format of ``hist``.

    :group: io

    Parameters
    ----------
    hist : Histogram
        Histogram to store.
    fname : str or Path or file-like
        Location on disk, or file-object, to save the data. If ``gzip``
        compression is desired, use the ``".gz"`` extension.
    encoding : str
        Standard used to encode the text into binary formats. Default is
        ``"utf-8"``.
    """
    text = encode_histogram(hist)
    if isinstance(fname, io.TextIOBase):
        fname.write(text)
    elif isinstance(fname, io.IOBase):
        fname.write(text.encode(encoding))
    else:
        fname = Path(fname)
        if fname.suffix == ".gz":
            f = gz.open(fname, mode="wt", encoding=encoding)
        else:
            f = open(fname, mode="w", encoding=encoding)
        with f:
            f.write(text)


def read_histogram(
    fname: ty.Union[str, Path, io.IOBase],
    dtype: npt.DTypeLike = np.float64,
    encoding: str = "utf-8",
    deindex: Deindex = None,
) -> Histogram:
    """Loads a histogram stored with ``write_histogram()``.

    :group: io

    Parameters
    ----------
    fname : str or Path or file-like
        Location on disk, or file-object, from which to load the data.
        Files with the ``".gz"`` extension are decompressed.
    dtype : DTypeLike
        Numpy dtype of the contents. Default is ``numpy.float64``.
    encoding : str
        Standard used to decode binary data into text. Default is
        ``"utf-8"``.
    deindex : callable, optional
        Inverse of ``operator.index()`` for ``BinIx`` values.

    Returns
    -------
    Histogram
        Instance loaded from the stored data.
    """
    if isinstance(fname, (str, Path)):
        fname = Path(fname)
        if fname.suffix == ".gz":
            f = gz.open(fname, mode="rt", encoding=encoding)
        else:
            f = open(fname, encoding=encoding)
        with f:
            text = f.read()
    else:
        fname.seek(0)
        text = fname.read()
    if isinstance(text, bytes):
        text = text.decode(encoding)
    return decode_histogram(text, dtype=dtype, deindex=deindex)

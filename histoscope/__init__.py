"""
``histoscope``
==============

Fill, slice, and transform histograms over pluggable binning
strategies with histoscope!
"""
import collections as cl
import typing as ty

import numpy as np
import pandas as pd
import plotly.express as px

from . import base
from ._version import __version__, __version_tuple__
from .accumulate import (
    HISTOGRAM_SUM,
    Accumulator,
    AccumulatorList,
    HistogramAccumulator,
    accum_hist,
    accum_list,
    put_weighted,
    run_fill,
)
from .base import LIST_CONCAT, SUM, TUPLE, Monoid
from .bins import (
    Bin2D,
    BinF,
    BinI,
    BinInt,
    BinIx,
    LogBinD,
    bin_2d,
    bin_f,
    bin_i,
    bin_int,
    bin_ix,
    log_bin_d,
)
from .errors import (
    BuilderFrozen,
    ConstructionError,
    HistoscopeError,
    IndexOutOfBounds,
    ParseError,
    ShapeMismatch,
)
from .histogram import Histogram, histogram, histogram_with_overflow
from .mutable import BuilderState, MutableHistogram, new_builder
from .textio import (
    decode_bins,
    decode_histogram,
    encode_bins,
    encode_histogram,
    read_histogram,
    write_histogram,
)

if ty.TYPE_CHECKING:
    from plotly.graph_objs._figure import Figure as PlotlyFigure


__all__ = [
    "__version__",
    "__version_tuple__",
    "BinI",
    "BinInt",
    "BinIx",
    "BinF",
    "LogBinD",
    "Bin2D",
    "bin_i",
    "bin_int",
    "bin_ix",
    "bin_f",
    "log_bin_d",
    "bin_2d",
    "Histogram",
    "histogram",
    "histogram_with_overflow",
    "MutableHistogram",
    "BuilderState",
    "new_builder",
    "Monoid",
    "SUM",
    "TUPLE",
    "LIST_CONCAT",
    "HISTOGRAM_SUM",
    "Accumulator",
    "HistogramAccumulator",
    "AccumulatorList",
    "accum_hist",
    "accum_list",
    "put_weighted",
    "run_fill",
    "encode_bins",
    "decode_bins",
    "encode_histogram",
    "decode_histogram",
    "write_histogram",
    "read_histogram",
    "HistoscopeError",
    "ConstructionError",
    "ShapeMismatch",
    "IndexOutOfBounds",
    "ParseError",
    "BuilderFrozen",
    "histogram_barchart",
    "histogram_heatmap",
]


def histogram_barchart(
    hist: ty.Union[Histogram, ty.Tuple[base.DoubleVector, base.DoubleVector]],
    hist_label: str,
    title: str = "",
    x_label: str = "x",
    y_label: str = "Probability density",
    overlays: ty.Optional[
        ty.Dict[str, ty.Union[Histogram, base.DoubleVector]]
    ] = None,
    opacity: float = 0.6,
    bar_style: ty.Literal["bar", "line"] = "bar",
) -> "PlotlyFigure":
    """Automatically convert a one-dimensional ``Histogram``, and
    optionally a number of ``overlays``, into a ``plotly`` bar chart of
    its probability density.

    :group: figs

    Parameters
    ----------
    hist : Histogram or tuple[ndarray[float], ndarray[float]]
        Histogram data to render. May either be passed as a
        ``Histogram`` instance, whose bins report their sizes, or a
        two-tuple of numpy arrays of bin centres and probability
        densities, respectively.
    hist_label : str
        Label for the histogram in the plot legend.
    title: str
        Heading for the plot. Default is ``""``.
    x_label, y_label : str
        Axis labels.
    overlays : dict[str, ndarray[float64] | Histogram], optional
        Additional densities to overlay on the same plot. Keys are the
        labels displayed in the plot legend, and values are histograms,
        or densities corresponding to the same x-bins of ``hist``.
        Default is ``None``.
    opacity : float
        Value in range [0, 1] setting how opaque bars are. Default is
        ``0.6``.
    bar_style : {'bar', 'line'}
        If passed as 'bar', the output will be adjacent column bars with
        a fill according to opacity. If 'line', continuous lines tracing
        the height of the bars will be created. Default is 'bar'.

    Returns
    -------
    PlotlyFigure
        Interactive ``plotly`` bar chart figure.
    """
    if isinstance(hist, Histogram):
        midpoints, pdf = hist.midpoints(), hist.density()
    else:
        midpoints, pdf = hist
    data_map = {x_label: midpoints, hist_label: pdf}
    if overlays is not None:
        overlays_ = cl.OrderedDict()
        for key, val in overlays.items():
            if isinstance(val, Histogram):
                val = val.density()
            overlays_[key] = val
        overlays_.update(data_map)
        data_map = overlays_
    data = pd.DataFrame(data_map)
    data_map.pop(x_label)
    legend_labels = list(data_map.keys())
    params = {
        "data_frame": data,
        "x": x_label,
        "y": legend_labels,
        "labels": {"x": x_label, "value": y_label},
        "title": title,
    }
    if bar_style == "bar":
        return px.bar(barmode="overlay", opacity=opacity, **params)
    return px.line(line_shape="hvh", **params).update_yaxes(rangemode="tozero")


def histogram_heatmap(
    hist: Histogram,
    title: str = "",
    x_label: str = "x",
    y_label: str = "y",
) -> "PlotlyFigure":
    """Renders the contents of a ``Histogram`` over ``Bin2D`` bins as a
    ``plotly`` heatmap.

    :group: figs

    Parameters
    ----------
    hist : Histogram
        Histogram with two-dimensional bins, whose axes both produce
        numeric bin values.
    title : str
        Heading for the plot. Default is ``""``.
    x_label, y_label : str
        Axis labels.

    Returns
    -------
    PlotlyFigure
        Interactive ``plotly`` heatmap figure.

    Raises
    ------
    TypeError
        If ``hist`` does not have 2D bins.
    """
    bins = hist.bins
    if not isinstance(bins, Bin2D):
        raise TypeError("Heatmaps require a histogram with Bin2D bins.")
    xs = list(map(bins.x.from_index, range(bins.n_bins_x)))
    ys = list(map(bins.y.from_index, range(bins.n_bins_y)))
    grid = np.asarray(hist.content).reshape(bins.n_bins_y, bins.n_bins_x)
    return px.imshow(
        grid,
        x=xs,
        y=ys,
        origin="lower",
        aspect="auto",
        labels={"x": x_label, "y": y_label, "color": "content"},
        title=title,
    )

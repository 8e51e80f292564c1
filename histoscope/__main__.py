import logging as lg
import sys
import typing as ty
from pathlib import Path

import click


def read_values(
    path: Path, parse: ty.Callable[[str], ty.Any], weighted: bool
) -> ty.Iterator[ty.Any]:
    """Lazily reads one value, or one ``value weight`` pair, per line
    of ``path``. Blank lines and lines starting with ``#`` are skipped.
    """
    with open(path, encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            fields = line.split()
            if not fields or fields[0].startswith("#"):
                continue
            try:
                val = parse(fields[0])
                if weighted:
                    val = (val, float(fields[1]))
            except (ValueError, IndexError) as err:
                raise click.ClickException(
                    f"{path}:{lineno}: can not read {line.strip()!r}."
                ) from err
            yield val


@click.command()
@click.argument(
    "values-path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "-b",
    "--binning",
    type=click.Choice(("lin", "log", "int"), case_sensitive=False),
    default="lin",
    show_default=True,
    help="Equal width, logarithmic, or integer bins.",
)
@click.option("--lo", type=click.FLOAT, required=True, help="Lower limit.")
@click.option("--hi", type=click.FLOAT, required=True, help="Upper limit.")
@click.option(
    "-n",
    "--num-bins",
    type=click.INT,
    default=10,
    show_default=True,
    help="Number of bins for lin and log binning.",
)
@click.option(
    "--step",
    type=click.INT,
    default=1,
    show_default=True,
    help="Width of the bins for int binning.",
)
@click.option(
    "-w",
    "--weighted",
    is_flag=True,
    help="Read a weight from the second column of each line.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the histogram here instead of stdout, gzipped for .gz.",
)
@click.option(
    "--summary", is_flag=True, help="Print a summary table to stderr."
)
@click.option(
    "--plot",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write an HTML bar chart of the density to this path.",
)
@click.option(
    "-l",
    "--log-level",
    type=click.Choice(
        ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"), case_sensitive=False
    ),
    default="WARNING",
    show_default=True,
    help="Minimum debugging level to include within logs.",
)
def main(
    values_path: Path,
    binning: str,
    lo: float,
    hi: float,
    num_bins: int,
    step: int,
    weighted: bool,
    output: ty.Optional[Path],
    summary: bool,
    plot: ty.Optional[Path],
    log_level: str,
) -> None:
    """Fills a histogram, in a single pass, with the values stored in
    VALUES_PATH, one per line, and writes it in the histoscope text
    format.
    """
    import histoscope as hsc

    lg.basicConfig(level=getattr(lg, log_level.upper()))
    binning = binning.lower()
    parse: ty.Callable[[str], ty.Any] = float
    try:
        if binning == "lin":
            bins = hsc.bin_f(lo, num_bins, hi)
        elif binning == "log":
            bins = hsc.log_bin_d(lo, num_bins, hi)
        else:
            bins = hsc.bin_int(int(lo), step, int(hi))
            parse = int
    except hsc.ConstructionError as err:
        raise click.BadParameter(str(err)) from err
    lg.info(f"Binning {values_path} with {bins}")

    zero = 0.0 if weighted else 0
    put = hsc.put_weighted if weighted else None

    def factory() -> hsc.Accumulator:
        return hsc.accum_hist(hsc.new_builder(zero, bins), put=put)

    hist = hsc.run_fill(factory, read_values(values_path, parse, weighted))
    if output is None:
        click.echo(hist.to_text(), nl=False)
    else:
        hist.to_file(output)
        lg.info(f"Histogram written to {output}")
    if summary:
        click.echo(repr(hist), err=True)
    if plot is not None:
        fig = hsc.histogram_barchart(hist, hist_label=values_path.stem)
        fig.write_html(str(plot))
        lg.info(f"Bar chart written to {plot}")


if __name__ == "__main__":
    sys.exit(main())

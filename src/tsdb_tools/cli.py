"""
Command-line interface for tsdb-tools.

Usage:
    python -m tsdb_tools influx to-csv metrics.lp --output metrics.csv
    python -m tsdb_tools influx from-csv metrics.csv --output metrics.lp
    python -m tsdb_tools influx validate metrics.lp
    python -m tsdb_tools info
"""

from pathlib import Path
from typing import List, Optional

import typer

from .converter import convert_file_to_csv, convert_file_to_line_protocol, validate_file
from .errors import ConversionError
from .models import ConversionConfig, ConversionReport, OnLineError, Strategy, TimeFormat

app = typer.Typer(
    name="tsdb-tools",
    help="Time-series data format utilities",
    add_completion=False,
)
influx_app = typer.Typer(help="InfluxDB line protocol conversions")
app.add_typer(influx_app, name="influx")


def _fail(error: ConversionError) -> None:
    typer.echo(typer.style(f"ERROR [{error.kind}]: {error}", fg=typer.colors.RED), err=True)
    raise typer.Exit(1)


def _print_issues(report: ConversionReport) -> None:
    for issue in report.issues:
        typer.echo(typer.style(f"  WARNING [{issue.kind}]: {issue.message}", fg=typer.colors.YELLOW))


@influx_app.command("to-csv")
def to_csv(
    input: Path = typer.Argument(
        ...,
        help="Input line protocol file",
        exists=True,
        dir_okay=False,
        file_okay=True,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Output CSV file (default: input path with .csv suffix)",
    ),
    skip_errors: bool = typer.Option(
        False,
        "--skip-errors",
        help="Skip and report unparsable lines instead of aborting",
    ),
    two_pass: bool = typer.Option(
        False,
        "--two-pass",
        help="Re-read the input instead of buffering all points in memory",
    ),
    time_format: TimeFormat = typer.Option(
        TimeFormat.NANOSECONDS,
        "--time-format", "-t",
        help="Timestamp rendering in the CSV",
    ),
    annotate: bool = typer.Option(
        True,
        "--annotate/--no-annotate",
        help="Write the #datatype row before the header",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Print verbose output",
    ),
):
    """
    Convert a line protocol file to CSV.

    Tags and fields of all points are unified into one header; each field
    cell keeps its line protocol type marker.
    """
    config = ConversionConfig(
        on_line_error=OnLineError.SKIP_AND_REPORT if skip_errors else OnLineError.ABORT,
        strategy=Strategy.TWO_PASS if two_pass else Strategy.BUFFERED,
        time_format=time_format,
        annotate=annotate,
    )
    output = output or input.with_suffix(".csv")
    try:
        report = convert_file_to_csv(input, output, config=config, verbose=verbose)
    except ConversionError as e:
        _fail(e)

    _print_issues(report)
    typer.echo(f"Converted {report.records_written} points to {output}")
    if verbose:
        typer.echo(f"  Columns: {','.join(report.columns)}")


@influx_app.command("from-csv")
def from_csv(
    input: Path = typer.Argument(
        ...,
        help="Input CSV file",
        exists=True,
        dir_okay=False,
        file_okay=True,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Output line protocol file (default: input path with .lp suffix)",
    ),
    sort_tags: bool = typer.Option(
        False,
        "--sort-tags",
        help="Write tags in lexicographic order",
    ),
    tags: List[str] = typer.Option(
        [],
        "--tag",
        help="Column to read as a tag when the CSV has no #datatype row (repeatable)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Print verbose output",
    ),
):
    """
    Convert a CSV file back to line protocol.
    """
    config = ConversionConfig(sort_tags=sort_tags, tag_columns=tags)
    output = output or input.with_suffix(".lp")
    try:
        report = convert_file_to_line_protocol(input, output, config=config, verbose=verbose)
    except ConversionError as e:
        _fail(e)

    typer.echo(f"Converted {report.records_written} rows to {output}")


@influx_app.command()
def validate(
    input: Path = typer.Argument(
        ...,
        help="Line protocol file to validate",
        exists=True,
        dir_okay=False,
        file_okay=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Print verbose output",
    ),
):
    """
    Validate a line protocol file.

    Reports every unparsable line and every field type conflict.
    """
    typer.echo(f"Validating: {input}")
    try:
        report = validate_file(input, verbose=verbose)
    except ConversionError as e:
        _fail(e)

    typer.echo(f"  Points: {report.points_read}")
    typer.echo(f"  Columns: {','.join(report.columns)}")
    for issue in report.issues:
        typer.echo(typer.style(f"  ERROR [{issue.kind}]: {issue.message}", fg=typer.colors.RED))

    if report.ok:
        typer.echo(typer.style("Validation passed", fg=typer.colors.GREEN))
    else:
        typer.echo(typer.style("Validation failed", fg=typer.colors.RED))
        raise typer.Exit(1)


@app.command()
def info():
    """
    Display the conversion format conventions.
    """
    typer.echo("Line protocol:")
    typer.echo("  measurement[,tag=value...] field=value[,...] [timestamp]")
    typer.echo("  Escapes: '\\,' '\\ ' '\\=' in keys and tag values; '\\,' '\\ ' in measurements")
    typer.echo("")
    typer.echo("Field literals (also used in CSV field cells):")
    typer.echo("  float     82, -1.5, 1e3")
    typer.echo("  integer   65i")
    typer.echo("  unsigned  65u")
    typer.echo("  boolean   t, f, true, false")
    typer.echo('  string    "text", quotes and backslashes escaped with \\')
    typer.echo("")
    typer.echo("CSV layout:")
    typer.echo("  #datatype row (optional): measurement, timestamp, tag, field:<type>")
    typer.echo("    It has one more cell than the header; generic CSV readers should")
    typer.echo("    skip the first row, or write the file with --no-annotate")
    typer.echo("  Header: measurement,timestamp,<sorted tag keys>,<sorted field keys>")
    typer.echo("  A key used as both tag and field is written as tag:<key> / field:<key>")
    typer.echo("  Empty cell = tag or field absent; timestamps are ns integers or RFC 3339")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

"""
Line protocol <-> CSV conversion pipelines.

Stream-level functions take an open text source and sink; the file-level
helpers open the files, write through a temporary file and only replace the
output once the whole conversion succeeded.
"""

import os
from pathlib import Path
from typing import Iterable, List, Optional, TextIO, Tuple

from .csv_codec import CsvPointReader, CsvPointWriter
from .errors import FieldTypeConflict, IoFailure, UnrepresentableValue
from .line_protocol import parse_lines, serialize_point
from .models import ConversionConfig, ConversionReport, LineIssue, OnLineError, Point, Strategy
from .schema import Layout, SchemaUnifier

# ==================== Line Protocol -> CSV ====================


def collect_points(
    lines: Iterable[str],
    config: ConversionConfig,
    issues: List[LineIssue],
) -> Tuple[List[Point], Layout]:
    """
    Parse every line and compute the layout (buffered strategy).

    Args:
        lines: Line protocol text lines
        config: Conversion settings; `on_line_error` decides abort vs skip
        issues: Receives one entry per skipped line

    Returns:
        (points, layout)
    """
    unifier = SchemaUnifier()
    points = []
    for number, point in parse_lines(lines, config.on_line_error, issues):
        unifier.observe(point, number)
        points.append(point)
    return points, unifier.layout()


def scan_layout(
    lines: Iterable[str],
    config: ConversionConfig,
    issues: List[LineIssue],
) -> Tuple[Layout, int]:
    """
    Compute the layout without keeping any point (first pass of two-pass).

    Returns:
        (layout, number of points seen)
    """
    unifier = SchemaUnifier()
    for number, point in parse_lines(lines, config.on_line_error, issues):
        unifier.observe(point, number)
    return unifier.layout(), unifier.points_seen


def line_protocol_to_csv(
    source: TextIO,
    sink: TextIO,
    config: Optional[ConversionConfig] = None,
    verbose: bool = False,
) -> ConversionReport:
    """
    Convert line protocol text to CSV.

    Nothing is written to `sink` until every line has been parsed and the
    layout is known, so a parse or type error never leaves partial output.

    Args:
        source: Line protocol text; must be seekable for Strategy.TWO_PASS
        sink: CSV text sink
        config: Conversion settings (defaults if None)
        verbose: Print progress messages

    Returns:
        ConversionReport with counts, header and skipped lines

    Raises:
        LineError: A bad line, when `on_line_error` is ABORT
        FieldTypeConflict: A field key has two different types
    """
    config = config or ConversionConfig()
    report = ConversionReport()

    if config.strategy is Strategy.TWO_PASS:
        if not source.seekable():
            raise ValueError("Two-pass conversion needs a seekable source")
        start = source.tell()
        if verbose:
            print("  Pass 1: scanning layout...")
        layout, report.points_read = scan_layout(source, config, report.issues)
        source.seek(start)
        if verbose:
            print("  Pass 2: writing rows...")
        # bad lines were already reported by the first pass
        points = (point for _, point in parse_lines(source, OnLineError.SKIP_AND_REPORT))
    else:
        if verbose:
            print("  Parsing line protocol...")
        points, layout = collect_points(source, config, report.issues)
        report.points_read = len(points)

    report.columns = layout.header()
    if verbose:
        print(f"    Read {report.points_read} points, skipped {len(report.issues)} lines")
        print(f"    Layout: {len(report.columns)} columns")

    writer = CsvPointWriter(
        sink,
        layout,
        time_format=config.time_format,
        annotate=config.annotate,
        chunk_size=config.chunk_size,
    )
    writer.write_header()
    writer.write_all(points)
    report.records_written = writer.rows_written

    if verbose:
        print(f"    Wrote {report.records_written} rows")
    return report


# ==================== CSV -> Line Protocol ====================


def csv_to_line_protocol(
    source: TextIO,
    sink: TextIO,
    config: Optional[ConversionConfig] = None,
    verbose: bool = False,
) -> ConversionReport:
    """
    Convert CSV text to line protocol, one line per row.

    Args:
        source: CSV text (open with newline="")
        sink: Line protocol text sink
        config: Conversion settings; `sort_tags` and `tag_columns` apply
        verbose: Print progress messages

    Returns:
        ConversionReport with counts and header

    Raises:
        CsvError: A malformed header or row
        FieldTypeConflict: A cell disagrees with its annotated column type
        InvalidTimestamp: A timestamp cell cannot be parsed
        UnrepresentableValue: A row holds text line protocol cannot carry
    """
    config = config or ConversionConfig()
    report = ConversionReport()

    reader = CsvPointReader(source, tag_columns=config.tag_columns)
    report.columns = reader.layout.header()
    if verbose:
        print(f"  Header: {len(report.columns)} columns")

    for number, point in reader:
        try:
            line = serialize_point(point, sort_tags=config.sort_tags)
        except UnrepresentableValue as e:
            e.row = number
            raise
        sink.write(line + "\n")
        report.points_read += 1
        report.records_written += 1

    if verbose:
        print(f"    Wrote {report.records_written} lines")
    return report


# ==================== Validation ====================


def validate_line_protocol(source: Iterable[str], verbose: bool = False) -> ConversionReport:
    """
    Check line protocol text without producing output.

    Every bad line and every field type conflict is reported; nothing raises.

    Returns:
        ConversionReport whose `columns` is the layout of the valid points
    """
    report = ConversionReport()
    unifier = SchemaUnifier()

    for number, point in parse_lines(source, OnLineError.SKIP_AND_REPORT, report.issues):
        try:
            unifier.observe(point, number)
        except FieldTypeConflict as e:
            report.issues.append(LineIssue(line=number, kind=e.kind, message=str(e)))
            if verbose:
                print(f"  {e} (first seen on line {unifier.first_seen(e.key)})")
            continue
        report.points_read += 1

    report.issues.sort(key=lambda issue: issue.line or 0)
    report.columns = unifier.layout().header()
    if verbose:
        print(f"  {report.points_read} valid points, {len(report.issues)} issues")
    return report


# ==================== File Helpers ====================


def _temporary_path(output_path: Path) -> Path:
    return output_path.with_name(output_path.name + ".tmp")


def convert_file_to_csv(
    input_path: Path,
    output_path: Path,
    config: Optional[ConversionConfig] = None,
    verbose: bool = False,
) -> ConversionReport:
    """
    Convert a line protocol file to a CSV file.

    Raises:
        IoFailure: The input cannot be read or the output cannot be written
    """
    input_path = Path(input_path)
    output_path = Path(output_path)
    if verbose:
        print(f"Converting {input_path.name} -> {output_path.name}")

    def run(tmp_path: Path) -> ConversionReport:
        with open(input_path, "r", encoding="utf-8") as src, open(
            tmp_path, "w", encoding="utf-8", newline=""
        ) as dst:
            return line_protocol_to_csv(src, dst, config=config, verbose=verbose)

    return _write_atomically(output_path, run)


def convert_file_to_line_protocol(
    input_path: Path,
    output_path: Path,
    config: Optional[ConversionConfig] = None,
    verbose: bool = False,
) -> ConversionReport:
    """
    Convert a CSV file to a line protocol file.

    Raises:
        IoFailure: The input cannot be read or the output cannot be written
    """
    input_path = Path(input_path)
    output_path = Path(output_path)
    if verbose:
        print(f"Converting {input_path.name} -> {output_path.name}")

    def run(tmp_path: Path) -> ConversionReport:
        with open(input_path, "r", encoding="utf-8", newline="") as src, open(
            tmp_path, "w", encoding="utf-8"
        ) as dst:
            return csv_to_line_protocol(src, dst, config=config, verbose=verbose)

    return _write_atomically(output_path, run)


def validate_file(input_path: Path, verbose: bool = False) -> ConversionReport:
    """Validate a line protocol file."""
    try:
        with open(input_path, "r", encoding="utf-8") as src:
            return validate_line_protocol(src, verbose=verbose)
    except OSError as e:
        raise IoFailure(f"{input_path}: {e.strerror or e}") from e
    except UnicodeDecodeError as e:
        raise IoFailure(f"{input_path}: not valid UTF-8 ({e.reason})") from e


def _write_atomically(output_path: Path, run) -> ConversionReport:
    tmp_path = _temporary_path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        report = run(tmp_path)
        os.replace(tmp_path, output_path)
        return report
    except OSError as e:
        raise IoFailure(f"{e.filename or output_path}: {e.strerror or e}") from e
    except UnicodeDecodeError as e:
        raise IoFailure(f"input is not valid UTF-8 ({e.reason})") from e
    finally:
        if tmp_path.exists():
            tmp_path.unlink()

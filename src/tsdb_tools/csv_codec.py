"""
CSV encoding and decoding of points against a column layout.

Field cells hold the line protocol literal of the value ('65i', '12u',
'true', '"text"', '82'), so the variant survives the trip through CSV. An
empty cell means the tag or field is absent; an empty string field is the
literal '""'.
"""

import csv
import re
from typing import Iterable, Iterator, List, Optional, Sequence, TextIO, Tuple

import pandas as pd

from .errors import (
    FieldTypeConflict,
    InvalidFieldLiteral,
    InvalidTimestamp,
    MalformedCsvRow,
    UnknownTypeMarker,
    UnterminatedString,
)
from .models import INT64_MAX, INT64_MIN, FieldType, FieldValue, Point, TimeFormat
from .schema import (
    DATATYPE_ANNOTATION,
    MEASUREMENT_COLUMN,
    TAG_PREFIX,
    TIMESTAMP_COLUMN,
    Column,
    ColumnRole,
    Layout,
    key_from_name,
)
from .values import format_field_value, parse_field_value

INTEGER_TIMESTAMP_RE = re.compile(r"-?[0-9]+")
RFC3339_RE = re.compile(
    r"[0-9]{4}-[0-9]{2}-[0-9]{2}[Tt ][0-9]{2}:[0-9]{2}:[0-9]{2}(?:\.[0-9]+)?(?:[Zz]|[+-][0-9]{2}:[0-9]{2})?"
)

# ==================== Timestamps ====================


def format_timestamp(timestamp: int, time_format: TimeFormat = TimeFormat.NANOSECONDS) -> str:
    """
    Render a nanosecond timestamp for a CSV cell.

    RFC 3339 output keeps full nanosecond precision. Values pandas cannot
    represent as a datetime are written as integers.
    """
    if time_format is TimeFormat.RFC3339:
        ts = pd.Timestamp(timestamp, unit="ns", tz="UTC")
        if not pd.isna(ts):
            return ts.isoformat().replace("+00:00", "Z")
    return str(timestamp)


def parse_timestamp(cell: str, row: Optional[int] = None) -> int:
    """
    Parse a timestamp cell written as integer nanoseconds or RFC 3339.

    RFC 3339 text without an offset is read as UTC.

    Raises:
        InvalidTimestamp: The cell is neither form, or is out of range
    """
    if INTEGER_TIMESTAMP_RE.fullmatch(cell):
        value = int(cell)
        if not INT64_MIN <= value <= INT64_MAX:
            raise InvalidTimestamp(f"timestamp {cell!r} overflows 64 bits", line=row)
        return value
    if not RFC3339_RE.fullmatch(cell):
        raise InvalidTimestamp(f"invalid timestamp {cell!r}", line=row)
    try:
        ts = pd.Timestamp(cell)
    except (ValueError, OverflowError) as e:
        raise InvalidTimestamp(f"invalid timestamp {cell!r}: {e}", line=row) from e
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return int(ts.value)


# ==================== Encoding ====================


def encode_header(layout: Layout, annotate: bool = True) -> List[List[str]]:
    """Header records for `layout`: the optional '#datatype' row, then column names."""
    records = [layout.annotations()] if annotate else []
    records.append(layout.header())
    return records


def encode_row(
    point: Point, layout: Layout, time_format: TimeFormat = TimeFormat.NANOSECONDS
) -> List[Optional[str]]:
    """
    Encode one point as a CSV row; None marks an empty cell.

    Raises:
        FieldTypeConflict: A field's type differs from its column's type
        ValueError: The point has a tag or field the layout does not cover
    """
    tag_keys = layout.tag_keys()
    field_types = layout.field_types()
    missing = [k for k in point.tags if k not in tag_keys] + [k for k in point.fields if k not in field_types]
    if missing:
        raise ValueError(f"Layout has no column for keys {missing}")

    row: List[Optional[str]] = []
    for column in layout.columns:
        if column.role is ColumnRole.MEASUREMENT:
            row.append(point.measurement)
        elif column.role is ColumnRole.TIMESTAMP:
            row.append(None if point.timestamp is None else format_timestamp(point.timestamp, time_format))
        elif column.role is ColumnRole.TAG:
            row.append(point.tags.get(column.key))
        else:
            value = point.fields.get(column.key)
            if value is None:
                row.append(None)
                continue
            if column.field_type is not None and value.type != column.field_type:
                raise FieldTypeConflict(column.key, column.field_type, value.type)
            row.append(format_field_value(value))
    return row


class CsvPointWriter:
    """
    Writes a header and then points as CSV rows.

    Rows are buffered and written through pandas in chunks of `chunk_size`.
    """

    def __init__(
        self,
        sink: TextIO,
        layout: Layout,
        time_format: TimeFormat = TimeFormat.NANOSECONDS,
        annotate: bool = True,
        chunk_size: int = 10000,
    ):
        self.sink = sink
        self.layout = layout
        self.time_format = time_format
        self.annotate = annotate
        self.chunk_size = chunk_size
        self.rows_written = 0
        self._pending: List[List[Optional[str]]] = []

    def write_header(self) -> None:
        writer = csv.writer(self.sink, lineterminator="\n")
        writer.writerows(encode_header(self.layout, annotate=self.annotate))

    def write(self, point: Point) -> None:
        self._pending.append(encode_row(point, self.layout, self.time_format))
        if len(self._pending) >= self.chunk_size:
            self.flush()

    def write_all(self, points: Iterable[Point]) -> None:
        for point in points:
            self.write(point)
        self.flush()

    def flush(self) -> None:
        if not self._pending:
            return
        df = pd.DataFrame(self._pending, columns=self.layout.header(), dtype=object)
        df.to_csv(self.sink, index=False, header=False, lineterminator="\n")
        self.rows_written += len(self._pending)
        self._pending = []


# ==================== Decoding ====================


def decode_header(
    header: Sequence[str],
    annotations: Optional[Sequence[str]] = None,
    tag_columns: Iterable[str] = (),
    row: Optional[int] = None,
) -> Layout:
    """
    Build a layout from a CSV header row.

    Args:
        header: Column names
        annotations: '#datatype' row cells after the marker, if the file has one
        tag_columns: Without annotations, plain column names to read as tags
        row: Record number of the header, for error messages

    Raises:
        MalformedCsvRow: The header cannot describe a valid layout
        UnknownTypeMarker: An annotation names an unknown field type
    """
    if annotations is not None and len(annotations) != len(header):
        raise MalformedCsvRow(
            f"annotation row has {len(annotations)} cells, header has {len(header)}", row=row
        )
    tag_columns = set(tag_columns)

    columns = []
    for i, name in enumerate(header):
        if annotations is None:
            columns.append(_inferred_column(name, tag_columns, row))
        else:
            columns.append(_annotated_column(name, annotations[i], row))

    names = [c.name for c in columns]
    if len(set(names)) != len(names):
        raise MalformedCsvRow("duplicate column names in header", row=row)
    roles = [c.role for c in columns]
    if roles.count(ColumnRole.MEASUREMENT) != 1:
        raise MalformedCsvRow("header needs exactly one measurement column", row=row)
    if roles.count(ColumnRole.TIMESTAMP) > 1:
        raise MalformedCsvRow("header has more than one timestamp column", row=row)
    for role in (ColumnRole.TAG, ColumnRole.FIELD):
        keys = [c.key for c in columns if c.role is role]
        if len(set(keys)) != len(keys):
            raise MalformedCsvRow(f"duplicate {role.value} keys in header", row=row)
    return Layout(columns=columns)


def _inferred_column(name: str, tag_columns: set, row: Optional[int]) -> Column:
    if name == MEASUREMENT_COLUMN:
        return Column(name=name, role=ColumnRole.MEASUREMENT)
    if name == TIMESTAMP_COLUMN:
        return Column(name=name, role=ColumnRole.TIMESTAMP)
    role = ColumnRole.TAG if name in tag_columns or name.startswith(TAG_PREFIX) else ColumnRole.FIELD
    key = key_from_name(name, role)
    if not key:
        raise MalformedCsvRow(f"empty {role.value} column name in header", row=row)
    return Column(name=name, role=role, key=key)


def _annotated_column(name: str, annotation: str, row: Optional[int]) -> Column:
    role_text, _, type_text = annotation.partition(":")
    try:
        role = ColumnRole(role_text)
    except ValueError:
        raise MalformedCsvRow(f"unknown datatype {annotation!r} for column {name!r}", row=row) from None

    if role is ColumnRole.FIELD:
        field_type = None
        if type_text:
            try:
                field_type = FieldType(type_text)
            except ValueError:
                raise UnknownTypeMarker(name, annotation, row=row) from None
        key = key_from_name(name, role)
        if not key:
            raise MalformedCsvRow("empty field column name in header", row=row)
        return Column(name=name, role=role, key=key, field_type=field_type)
    if type_text:
        raise MalformedCsvRow(f"unknown datatype {annotation!r} for column {name!r}", row=row)
    if role is ColumnRole.TAG:
        key = key_from_name(name, role)
        if not key:
            raise MalformedCsvRow("empty tag column name in header", row=row)
        return Column(name=name, role=role, key=key)
    return Column(name=name, role=role)


def decode_row(record: Sequence[str], layout: Layout, row: Optional[int] = None) -> Point:
    """
    Rebuild a point from one CSV record.

    Raises:
        MalformedCsvRow: Wrong cell count, empty measurement, or no fields
        UnknownTypeMarker: A field cell is not a valid field literal
        FieldTypeConflict: A field cell disagrees with its annotated type
        InvalidTimestamp: The timestamp cell cannot be parsed
    """
    if len(record) != len(layout.columns):
        raise MalformedCsvRow(
            f"expected {len(layout.columns)} cells, found {len(record)}", row=row
        )

    measurement = ""
    timestamp = None
    tags = {}
    fields = {}
    for column, cell in zip(layout.columns, record):
        if column.role is ColumnRole.MEASUREMENT:
            measurement = cell
        elif not cell:
            continue
        elif column.role is ColumnRole.TIMESTAMP:
            timestamp = parse_timestamp(cell, row)
        elif column.role is ColumnRole.TAG:
            tags[column.key] = cell
        else:
            fields[column.key] = _decode_field(column, cell, row)

    if not measurement:
        raise MalformedCsvRow("empty measurement", row=row)
    if not fields:
        raise MalformedCsvRow("row has no field values", row=row)
    return Point(measurement=measurement, tags=tags, fields=fields, timestamp=timestamp)


def _decode_field(column: Column, cell: str, row: Optional[int]) -> FieldValue:
    try:
        value = parse_field_value(cell)
    except (InvalidFieldLiteral, UnterminatedString):
        raise UnknownTypeMarker(column.name, cell, row=row) from None
    if column.field_type is not None and value.type != column.field_type:
        raise FieldTypeConflict(column.key, column.field_type, value.type, line=row)
    return value


class CsvPointReader:
    """
    Reads points from CSV text.

    The layout is read from the header (and '#datatype' row, if present) on
    construction. Iterating yields (record_number, point); blank records are
    skipped.
    """

    def __init__(self, source: Iterable[str], tag_columns: Iterable[str] = ()):
        self._records = csv.reader(source)
        self.record_number = 0
        self.layout = self._read_header(tag_columns)

    def _next_record(self) -> Optional[List[str]]:
        for record in self._records:
            self.record_number += 1
            if record:
                return record
        return None

    def _read_header(self, tag_columns: Iterable[str]) -> Layout:
        first = self._next_record()
        if first is None:
            raise MalformedCsvRow("missing header row", row=1)
        if first[0] != DATATYPE_ANNOTATION:
            return decode_header(first, tag_columns=tag_columns, row=self.record_number)
        header = self._next_record()
        if header is None:
            raise MalformedCsvRow("missing header row after annotations", row=self.record_number + 1)
        return decode_header(header, annotations=first[1:], row=self.record_number)

    def __iter__(self) -> Iterator[Tuple[int, Point]]:
        while True:
            record = self._next_record()
            if record is None:
                return
            yield self.record_number, decode_row(record, self.layout, self.record_number)

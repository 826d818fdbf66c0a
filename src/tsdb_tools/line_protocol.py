"""
Line protocol parser and serializer.

A record looks like:

    measurement[,tag_key=tag_value...] field_key=field_value[,...] [timestamp]

Blank lines and lines starting with '#' are comments.
"""

import re
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .errors import (
    DuplicateKey,
    InvalidTimestamp,
    LineError,
    MalformedPair,
    MissingFields,
    MissingMeasurement,
    UnrepresentableValue,
    UnterminatedString,
)
from .models import INT64_MAX, INT64_MIN, FieldValue, LineIssue, OnLineError, Point
from .values import (
    escape_key,
    escape_measurement,
    format_field_value,
    parse_field_value,
    unescape_key,
    unescape_measurement,
)

TIMESTAMP_RE = re.compile(r"-?[0-9]+")

# ==================== Parsing ====================


def parse_line(line: str, line_number: Optional[int] = None) -> Optional[Point]:
    """
    Parse one line protocol record.

    Args:
        line: Raw line, with or without its line terminator
        line_number: Position of the line, attached to any error raised

    Returns:
        The parsed Point, or None for blank and comment lines

    Raises:
        LineError: Any of its subclasses, with `line` set to `line_number`
    """
    text = line.strip()
    if not text or text.startswith("#"):
        return None
    try:
        return _parse_record(text)
    except LineError as e:
        if e.line is None:
            e.line = line_number
        raise


def parse_lines(
    lines: Iterable[str],
    on_line_error: OnLineError = OnLineError.ABORT,
    issues: Optional[List[LineIssue]] = None,
) -> Iterator[Tuple[int, Point]]:
    """
    Parse a sequence of lines, numbering them from 1.

    With OnLineError.ABORT the first bad line raises. With
    OnLineError.SKIP_AND_REPORT bad lines are appended to `issues` and
    parsing continues with the next line.

    Yields:
        (line_number, point) for every record line
    """
    for number, line in enumerate(lines, start=1):
        try:
            point = parse_line(line, number)
        except LineError as e:
            if on_line_error is OnLineError.ABORT:
                raise
            if issues is not None:
                issues.append(LineIssue(line=number, kind=e.kind, message=str(e)))
            continue
        if point is not None:
            yield number, point


def _parse_record(text: str) -> Point:
    series_end = _find_unescaped(text, " ", 0)
    comma = _find_unescaped(text[:series_end], ",", 0)

    measurement = unescape_measurement(text[:comma])
    if not measurement:
        raise MissingMeasurement("missing measurement")

    tags: Dict[str, str] = {}
    if comma < series_end:
        for pair in _split_unescaped(text[comma + 1:series_end], ","):
            key, value = _split_tag(pair)
            if key in tags:
                raise DuplicateKey(f"duplicate tag key {key!r}")
            tags[key] = value

    if series_end >= len(text):
        raise MissingFields("missing field set")
    fields, fields_end = _scan_fields(text, series_end + 1)

    timestamp = None
    if fields_end < len(text):
        timestamp = _parse_timestamp(text[fields_end + 1:])

    return Point(measurement=measurement, tags=tags, fields=fields, timestamp=timestamp)


def _find_unescaped(text: str, delimiter: str, start: int) -> int:
    """Index of the first `delimiter` not preceded by a backslash, or len(text)."""
    i = text.find(delimiter, start)
    while i > 0 and text[i - 1] == "\\":
        i = text.find(delimiter, i + 1)
    return len(text) if i < 0 else i


def _split_unescaped(text: str, delimiter: str) -> List[str]:
    parts = []
    start = 0
    while True:
        end = _find_unescaped(text, delimiter, start)
        parts.append(text[start:end])
        if end >= len(text):
            return parts
        start = end + 1


def _split_tag(pair: str) -> Tuple[str, str]:
    eq = _find_unescaped(pair, "=", 0)
    if eq >= len(pair):
        raise MalformedPair(f"tag {pair!r} is missing '='")
    key = unescape_key(pair[:eq])
    value = unescape_key(pair[eq + 1:])
    if not key:
        raise MalformedPair(f"tag {pair!r} has an empty key")
    if not value:
        raise MalformedPair(f"tag {key!r} has an empty value")
    return key, value


def _scan_fields(text: str, start: int) -> Tuple[Dict[str, FieldValue], int]:
    """
    Scan the field set beginning at `start`.

    Delimiters inside a quoted string value are part of the value, so quote
    state is tracked while scanning.

    Returns:
        (fields, index of the space ending the field set or len(text))
    """
    fields: Dict[str, FieldValue] = {}
    pair_start = start
    eq = None
    in_quotes = False
    i = start
    while i < len(text):
        ch = text[i]
        if in_quotes:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_quotes = False
        elif ch == '"' and eq is not None and i == eq + 1:
            in_quotes = True
        elif text[i - 1] != "\\":
            if ch == "=" and eq is None:
                eq = i
            elif ch == ",":
                _add_field(fields, text, pair_start, eq, i)
                pair_start = i + 1
                eq = None
            elif ch == " ":
                break
        i += 1

    if in_quotes:
        raise UnterminatedString(f"unterminated string in field set {text[pair_start:]!r}")
    if i == start:
        raise MissingFields("missing field set")
    _add_field(fields, text, pair_start, eq, i)
    return fields, i


def _add_field(fields: Dict[str, FieldValue], text: str, start: int, eq: Optional[int], end: int) -> None:
    if eq is None:
        raise MalformedPair(f"field {text[start:end]!r} is missing '='")
    key = unescape_key(text[start:eq])
    if not key:
        raise MalformedPair(f"field {text[start:end]!r} has an empty key")
    if key in fields:
        raise DuplicateKey(f"duplicate field key {key!r}")
    fields[key] = parse_field_value(text[eq + 1:end])


def _parse_timestamp(token: str) -> int:
    if not TIMESTAMP_RE.fullmatch(token):
        raise InvalidTimestamp(f"invalid timestamp {token!r}")
    value = int(token)
    if not INT64_MIN <= value <= INT64_MAX:
        raise InvalidTimestamp(f"timestamp {token!r} overflows 64 bits")
    return value


# ==================== Serialization ====================


def serialize_point(point: Point, sort_tags: bool = False) -> str:
    """
    Render a Point as one line protocol record, without a line terminator.

    Args:
        point: Point to render
        sort_tags: Emit tags in lexicographic key order instead of stored order

    Raises:
        UnrepresentableValue: The record would not parse back to `point`
    """
    _check_trailing_backslashes(point)
    tags = sorted(point.tags.items()) if sort_tags else point.tags.items()
    series = escape_measurement(point.measurement) + "".join(
        f",{escape_key(key)}={escape_key(value)}" for key, value in tags
    )
    field_set = ",".join(
        f"{escape_key(key)}={format_field_value(value)}" for key, value in point.fields.items()
    )
    if point.timestamp is None:
        line = f"{series} {field_set}"
    else:
        line = f"{series} {field_set} {point.timestamp}"

    if line.splitlines() != [line]:
        raise UnrepresentableValue(f"line break inside point {point.measurement!r}")
    if line.startswith("#") or line[0].isspace():
        raise UnrepresentableValue(
            f"measurement {point.measurement!r} would be read back as a comment or blank"
        )
    return line


def _check_trailing_backslashes(point: Point) -> None:
    # a trailing backslash escapes the delimiter written after it
    texts = [("measurement", point.measurement)]
    for key, value in point.tags.items():
        texts += [("tag key", key), ("tag value", value)]
    texts += [("field key", key) for key in point.fields]
    for what, text in texts:
        if text.endswith("\\"):
            raise UnrepresentableValue(f"{what} {text!r} ends with a backslash")


def serialize_points(points: Iterable[Point], sort_tags: bool = False) -> Iterator[str]:
    """Yield newline-terminated records for `points`."""
    for point in points:
        yield serialize_point(point, sort_tags=sort_tags) + "\n"


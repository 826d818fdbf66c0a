"""
Exceptions raised by the conversion core.

Line-scoped errors carry the input line number, CSV errors the CSV record
number. Both are assigned by whoever knows the position, so the value codec
can raise them without one.
"""

from typing import Optional


class ConversionError(Exception):
    """Base exception for tsdb-tools."""

    @property
    def kind(self) -> str:
        return type(self).__name__


# ==================== Line Protocol ====================


class LineError(ConversionError):
    """Raised when a single line protocol record cannot be parsed."""

    def __init__(self, detail: str, line: Optional[int] = None):
        self.detail = detail
        self.line = line
        super().__init__(detail)

    def __str__(self) -> str:
        if self.line is None:
            return self.detail
        return f"line {self.line}: {self.detail}"


class MissingMeasurement(LineError):
    """Raised when a line has no measurement name."""


class MissingFields(LineError):
    """Raised when a line has an empty field set."""


class DuplicateKey(LineError):
    """Raised when a tag or field key repeats within one line."""


class MalformedPair(LineError):
    """Raised when a tag or field is not a non-empty key=value pair."""


class InvalidFieldLiteral(LineError):
    """Raised when a field literal matches none of the value syntaxes."""


class UnterminatedString(LineError):
    """Raised when a quoted string field has no closing quote."""


class InvalidTimestamp(LineError):
    """Raised when a timestamp is not a signed 64-bit integer."""


# ==================== Schema ====================


class FieldTypeConflict(ConversionError):
    """Raised when one field key is seen with two different value types."""

    def __init__(self, key: str, first, second, line: Optional[int] = None):
        self.key = key
        self.first = first
        self.second = second
        self.line = line
        where = f" (line {line})" if line is not None else ""
        super().__init__(
            f"field {key!r} has conflicting types {first.value} and {second.value}{where}"
        )


# ==================== Serialization ====================


class UnrepresentableValue(ConversionError):
    """Raised when a point holds text that line protocol cannot carry."""

    def __init__(self, detail: str, row: Optional[int] = None):
        self.detail = detail
        self.row = row
        super().__init__(detail)

    def __str__(self) -> str:
        if self.row is None:
            return self.detail
        return f"row {self.row}: {self.detail}"


# ==================== CSV ====================


class CsvError(ConversionError):
    """Raised when a CSV record cannot be decoded."""

    def __init__(self, detail: str, row: Optional[int] = None):
        self.detail = detail
        self.row = row
        super().__init__(detail)

    def __str__(self) -> str:
        if self.row is None:
            return self.detail
        return f"row {self.row}: {self.detail}"


class MalformedCsvRow(CsvError):
    """Raised when a header or row does not fit the column layout."""


class UnknownTypeMarker(CsvError):
    """Raised when a field cell carries no recognizable type marker."""

    def __init__(self, column: str, cell: str, row: Optional[int] = None):
        self.column = column
        self.cell = cell
        super().__init__(f"column {column!r}: unrecognized field literal {cell!r}", row=row)


# ==================== I/O ====================


class IoFailure(ConversionError):
    """Raised when reading the source or writing the sink fails."""

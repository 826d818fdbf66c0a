"""
tsdb-tools - InfluxDB line protocol <-> CSV converter

Parses line protocol into typed points, unifies heterogeneous points into one
CSV column layout, and converts CSV rows back into line protocol.
"""

from .models import (
    FieldType,
    FloatValue,
    IntegerValue,
    UnsignedValue,
    BooleanValue,
    StringValue,
    Point,
    field_value,
    OnLineError,
    Strategy,
    TimeFormat,
    ConversionConfig,
    ConversionReport,
    LineIssue,
)
from .values import parse_field_value, format_field_value
from .line_protocol import parse_line, parse_lines, serialize_point, serialize_points
from .schema import Column, ColumnRole, Layout, SchemaUnifier, unify
from .csv_codec import (
    CsvPointReader,
    CsvPointWriter,
    decode_header,
    decode_row,
    encode_header,
    encode_row,
)
from .converter import (
    csv_to_line_protocol,
    line_protocol_to_csv,
    validate_line_protocol,
    convert_file_to_csv,
    convert_file_to_line_protocol,
)

__version__ = "0.1.0"
__all__ = [
    "FieldType",
    "FloatValue",
    "IntegerValue",
    "UnsignedValue",
    "BooleanValue",
    "StringValue",
    "Point",
    "field_value",
    "OnLineError",
    "Strategy",
    "TimeFormat",
    "ConversionConfig",
    "ConversionReport",
    "LineIssue",
    "parse_field_value",
    "format_field_value",
    "parse_line",
    "parse_lines",
    "serialize_point",
    "serialize_points",
    "Column",
    "ColumnRole",
    "Layout",
    "SchemaUnifier",
    "unify",
    "CsvPointReader",
    "CsvPointWriter",
    "decode_header",
    "decode_row",
    "encode_header",
    "encode_row",
    "csv_to_line_protocol",
    "line_protocol_to_csv",
    "validate_line_protocol",
    "convert_file_to_csv",
    "convert_file_to_line_protocol",
]

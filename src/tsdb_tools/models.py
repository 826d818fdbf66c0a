"""
Pydantic models for time-series points, field values and conversion settings.

Defines the point model shared by both conversion directions, the closed
five-way field value variant, and the configuration/report models used by
the converter and CLI.
"""

import math
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, field_validator

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
UINT64_MAX = 2 ** 64 - 1


class FieldType(str, Enum):
    """Field value variants, named as they appear in CSV annotations."""
    FLOAT = "float"
    INTEGER = "integer"
    UNSIGNED = "unsigned"
    BOOLEAN = "boolean"
    STRING = "string"


class OnLineError(str, Enum):
    """What the parser does with a line that fails to parse."""
    ABORT = "abort"
    SKIP_AND_REPORT = "skip"


class Strategy(str, Enum):
    """How the line protocol -> CSV direction learns its column layout."""
    BUFFERED = "buffered"
    TWO_PASS = "two-pass"


class TimeFormat(str, Enum):
    """Rendering of the timestamp column in CSV output."""
    NANOSECONDS = "ns"
    RFC3339 = "rfc3339"


# ==================== Field Values ====================


class FloatValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal[FieldType.FLOAT] = FieldType.FLOAT
    value: float

    @field_validator("value")
    @classmethod
    def _finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("float field values must be finite")
        return v


class IntegerValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal[FieldType.INTEGER] = FieldType.INTEGER
    value: StrictInt = Field(ge=INT64_MIN, le=INT64_MAX)


class UnsignedValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal[FieldType.UNSIGNED] = FieldType.UNSIGNED
    value: StrictInt = Field(ge=0, le=UINT64_MAX)


class BooleanValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal[FieldType.BOOLEAN] = FieldType.BOOLEAN
    value: StrictBool


class StringValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal[FieldType.STRING] = FieldType.STRING
    value: StrictStr


FieldValue = Annotated[
    Union[FloatValue, IntegerValue, UnsignedValue, BooleanValue, StringValue],
    Field(discriminator="type"),
]


def field_value(value: Union[bool, int, float, str]) -> FieldValue:
    """
    Build a field value from a plain Python scalar.

    bool maps to boolean, int to signed integer, float to float and str to
    string. Unsigned integers must be built explicitly with UnsignedValue.
    """
    if isinstance(value, bool):
        return BooleanValue(value=value)
    if isinstance(value, int):
        return IntegerValue(value=value)
    if isinstance(value, float):
        return FloatValue(value=value)
    if isinstance(value, str):
        return StringValue(value=value)
    raise TypeError(f"Unsupported field value type: {type(value).__name__}")


# ==================== Point ====================


class Point(BaseModel):
    """
    One time-series observation.

    Tags and fields keep their insertion order. A missing timestamp means the
    consumer assigns one; it is never filled in here.
    """
    model_config = ConfigDict(frozen=True)

    measurement: str = Field(min_length=1, description="Series family name")
    tags: Dict[str, str] = Field(default_factory=dict, description="Tag key to tag value")
    fields: Dict[str, FieldValue] = Field(description="Field key to typed value")
    timestamp: Optional[Annotated[StrictInt, Field(ge=INT64_MIN, le=INT64_MAX)]] = Field(
        default=None, description="Nanoseconds since the epoch"
    )

    @field_validator("tags")
    @classmethod
    def _check_tags(cls, tags: Dict[str, str]) -> Dict[str, str]:
        for key, value in tags.items():
            if not key:
                raise ValueError("tag keys must be non-empty")
            if not value:
                raise ValueError(f"tag {key!r} has an empty value")
        return tags

    @field_validator("fields")
    @classmethod
    def _check_fields(cls, fields: Dict[str, FieldValue]) -> Dict[str, FieldValue]:
        if not fields:
            raise ValueError("a point needs at least one field")
        if any(not key for key in fields):
            raise ValueError("field keys must be non-empty")
        return fields

    def field_types(self) -> Dict[str, FieldType]:
        """Map each field key to the variant of its value."""
        return {key: value.type for key, value in self.fields.items()}


# ==================== Conversion Settings & Results ====================


class ConversionConfig(BaseModel):
    """Knobs shared by both conversion directions."""
    on_line_error: OnLineError = Field(
        default=OnLineError.ABORT, description="Abort on the first bad line, or skip and report it"
    )
    sort_tags: bool = Field(default=False, description="Serialize tags in lexicographic order")
    strategy: Strategy = Field(default=Strategy.BUFFERED, description="Layout discovery strategy")
    time_format: TimeFormat = Field(default=TimeFormat.NANOSECONDS, description="CSV timestamp rendering")
    annotate: bool = Field(default=True, description="Write the #datatype annotation row")
    tag_columns: List[str] = Field(
        default_factory=list, description="Columns to read as tags when CSV input has no annotation row"
    )
    chunk_size: int = Field(default=10000, ge=1, description="Rows per CSV write chunk")


class LineIssue(BaseModel):
    """A line (or CSV row) that was skipped, with the reason."""
    line: Optional[int] = Field(default=None, description="1-based line number")
    kind: str = Field(description="Error class name")
    message: str = Field(description="Human readable description")


class ConversionReport(BaseModel):
    """Summary of one conversion pass."""
    points_read: int = 0
    records_written: int = 0
    columns: List[str] = Field(default_factory=list, description="CSV header of the pass")
    issues: List[LineIssue] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

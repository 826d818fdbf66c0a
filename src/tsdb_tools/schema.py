"""
Column layout for the CSV side of a conversion.

A layout is `measurement`, `timestamp`, the sorted union of tag keys, then the
sorted union of field keys, each field column pinned to one value type.
"""

from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field

from .errors import FieldTypeConflict
from .models import FieldType, Point

MEASUREMENT_COLUMN = "measurement"
TIMESTAMP_COLUMN = "timestamp"
RESERVED_COLUMNS = frozenset({MEASUREMENT_COLUMN, TIMESTAMP_COLUMN})

TAG_PREFIX = "tag:"
FIELD_PREFIX = "field:"

DATATYPE_ANNOTATION = "#datatype"


class ColumnRole(str, Enum):
    """What a CSV column holds."""
    MEASUREMENT = "measurement"
    TIMESTAMP = "timestamp"
    TAG = "tag"
    FIELD = "field"


class Column(BaseModel):
    """One CSV column."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Header name")
    role: ColumnRole = Field(description="Column role")
    key: Optional[str] = Field(default=None, description="Tag or field key, for tag/field columns")
    field_type: Optional[FieldType] = Field(
        default=None, description="Value type of a field column, None when not known"
    )

    def annotation(self) -> str:
        """Datatype annotation cell for this column."""
        if self.role is ColumnRole.FIELD and self.field_type is not None:
            return f"{ColumnRole.FIELD.value}:{self.field_type.value}"
        return self.role.value


class Layout(BaseModel):
    """Ordered CSV columns."""
    model_config = ConfigDict(frozen=True)

    columns: List[Column] = Field(default_factory=list)

    def header(self) -> List[str]:
        return [column.name for column in self.columns]

    def annotations(self) -> List[str]:
        """The '#datatype' annotation row, one cell longer than the header."""
        return [DATATYPE_ANNOTATION] + [column.annotation() for column in self.columns]

    def tag_keys(self) -> List[str]:
        return [c.key for c in self.columns if c.role is ColumnRole.TAG]

    def field_types(self) -> Dict[str, Optional[FieldType]]:
        return {c.key: c.field_type for c in self.columns if c.role is ColumnRole.FIELD}


def column_name(key: str, role: ColumnRole, collisions: Set[str]) -> str:
    """
    Header name for a tag or field key.

    Keys that collide with another column, or that already look prefixed,
    are written as 'tag:<key>' / 'field:<key>'.
    """
    prefix = TAG_PREFIX if role is ColumnRole.TAG else FIELD_PREFIX
    if (
        key in collisions
        or key in RESERVED_COLUMNS
        or key.startswith(TAG_PREFIX)
        or key.startswith(FIELD_PREFIX)
    ):
        return prefix + key
    return key


def key_from_name(name: str, role: ColumnRole) -> str:
    """Inverse of column_name for a column whose role is known."""
    prefix = TAG_PREFIX if role is ColumnRole.TAG else FIELD_PREFIX
    if name.startswith(prefix):
        return name[len(prefix):]
    return name


class SchemaUnifier:
    """
    Accumulates the union of tag keys and field types over a stream of points.

    Only keys and types are kept, never the points themselves, so a unifier
    can run over a stream that is re-read later for output.
    """

    def __init__(self):
        self._tag_keys: Set[str] = set()
        self._field_types: Dict[str, FieldType] = {}
        self._first_seen: Dict[str, Optional[int]] = {}
        self.points_seen = 0

    def observe(self, point: Point, line_number: Optional[int] = None) -> None:
        """
        Add one point's keys to the layout.

        A conflicting point leaves the unifier unchanged.

        Raises:
            FieldTypeConflict: A field key was already seen with another type
        """
        field_types = point.field_types()
        for key, field_type in field_types.items():
            seen = self._field_types.get(key)
            if seen is not None and seen != field_type:
                raise FieldTypeConflict(key, seen, field_type, line=line_number)

        for key, field_type in field_types.items():
            if key not in self._field_types:
                self._field_types[key] = field_type
                self._first_seen[key] = line_number
        self._tag_keys.update(point.tags)
        self.points_seen += 1

    def first_seen(self, key: str) -> Optional[int]:
        """Line number where field `key` was first observed."""
        return self._first_seen.get(key)

    def layout(self) -> Layout:
        tag_keys = sorted(self._tag_keys)
        field_keys = sorted(self._field_types)
        collisions = self._tag_keys & set(self._field_types)

        columns = [
            Column(name=MEASUREMENT_COLUMN, role=ColumnRole.MEASUREMENT),
            Column(name=TIMESTAMP_COLUMN, role=ColumnRole.TIMESTAMP),
        ]
        columns.extend(
            Column(name=column_name(key, ColumnRole.TAG, collisions), role=ColumnRole.TAG, key=key)
            for key in tag_keys
        )
        columns.extend(
            Column(
                name=column_name(key, ColumnRole.FIELD, collisions),
                role=ColumnRole.FIELD,
                key=key,
                field_type=self._field_types[key],
            )
            for key in field_keys
        )
        return Layout(columns=columns)


def unify(points: Iterable[Point]) -> Layout:
    """Compute the layout covering every point in `points`."""
    unifier = SchemaUnifier()
    for point in points:
        unifier.observe(point)
    return unifier.layout()

"""Tests for Pydantic models."""

import pytest
from pydantic import TypeAdapter, ValidationError

from tsdb_tools.models import (
    BooleanValue,
    ConversionConfig,
    ConversionReport,
    FieldType,
    FieldValue,
    FloatValue,
    IntegerValue,
    LineIssue,
    OnLineError,
    Point,
    Strategy,
    StringValue,
    TimeFormat,
    UnsignedValue,
    field_value,
)


class TestFieldType:
    def test_enum_values(self):
        assert FieldType.FLOAT == "float"
        assert FieldType.INTEGER == "integer"
        assert FieldType.UNSIGNED == "unsigned"
        assert FieldType.BOOLEAN == "boolean"
        assert FieldType.STRING == "string"

    def test_enum_from_string(self):
        assert FieldType("unsigned") == FieldType.UNSIGNED


class TestFieldValues:
    def test_variants_carry_type(self):
        assert FloatValue(value=1.0).type == FieldType.FLOAT
        assert IntegerValue(value=1).type == FieldType.INTEGER
        assert UnsignedValue(value=1).type == FieldType.UNSIGNED
        assert BooleanValue(value=True).type == FieldType.BOOLEAN
        assert StringValue(value="a").type == FieldType.STRING

    def test_same_number_different_variant_not_equal(self):
        assert FloatValue(value=5) != IntegerValue(value=5)
        assert IntegerValue(value=5) != UnsignedValue(value=5)

    def test_float_accepts_int(self):
        assert FloatValue(value=5).value == 5.0

    def test_integer_is_strict(self):
        with pytest.raises(ValidationError):
            IntegerValue(value=True)
        with pytest.raises(ValidationError):
            IntegerValue(value=1.5)

    def test_integer_range(self):
        with pytest.raises(ValidationError):
            IntegerValue(value=2 ** 63)

    def test_unsigned_range(self):
        with pytest.raises(ValidationError):
            UnsignedValue(value=-1)
        with pytest.raises(ValidationError):
            UnsignedValue(value=2 ** 64)

    def test_float_must_be_finite(self):
        with pytest.raises(ValidationError):
            FloatValue(value=float("nan"))

    def test_frozen(self):
        value = IntegerValue(value=1)
        with pytest.raises(ValidationError):
            value.value = 2

    def test_discriminated_union(self):
        adapter = TypeAdapter(FieldValue)
        assert adapter.validate_python({"type": "unsigned", "value": 3}) == UnsignedValue(value=3)
        assert adapter.validate_python({"type": "string", "value": "x"}) == StringValue(value="x")

    def test_field_value_helper(self):
        assert field_value(True) == BooleanValue(value=True)
        assert field_value(3) == IntegerValue(value=3)
        assert field_value(3.5) == FloatValue(value=3.5)
        assert field_value("x") == StringValue(value="x")
        with pytest.raises(TypeError):
            field_value(None)


class TestPoint:
    def test_create_point(self, weather_point):
        assert weather_point.measurement == "weather"
        assert weather_point.field_types() == {
            "temperature": FieldType.FLOAT,
            "humidity": FieldType.INTEGER,
        }

    def test_timestamp_optional(self):
        point = Point(measurement="m", fields={"v": FloatValue(value=1.0)})
        assert point.timestamp is None
        assert point.tags == {}

    def test_fields_required(self):
        with pytest.raises(ValidationError):
            Point(measurement="m", fields={})

    def test_measurement_required(self):
        with pytest.raises(ValidationError):
            Point(measurement="", fields={"v": FloatValue(value=1.0)})

    def test_empty_keys_rejected(self):
        with pytest.raises(ValidationError):
            Point(measurement="m", fields={"": FloatValue(value=1.0)})
        with pytest.raises(ValidationError):
            Point(measurement="m", tags={"": "a"}, fields={"v": FloatValue(value=1.0)})
        with pytest.raises(ValidationError):
            Point(measurement="m", tags={"k": ""}, fields={"v": FloatValue(value=1.0)})

    def test_timestamp_range(self):
        with pytest.raises(ValidationError):
            Point(measurement="m", fields={"v": FloatValue(value=1.0)}, timestamp=2 ** 63)

    def test_fields_from_dicts(self):
        point = Point.model_validate(
            {"measurement": "m", "fields": {"v": {"type": "integer", "value": 4}}, "timestamp": 1}
        )
        assert point.fields["v"] == IntegerValue(value=4)

    def test_frozen(self, weather_point):
        with pytest.raises(ValidationError):
            weather_point.measurement = "other"


class TestConversionConfig:
    def test_defaults(self):
        config = ConversionConfig()
        assert config.on_line_error == OnLineError.ABORT
        assert config.sort_tags is False
        assert config.strategy == Strategy.BUFFERED
        assert config.time_format == TimeFormat.NANOSECONDS
        assert config.annotate is True
        assert config.tag_columns == []

    def test_from_strings(self):
        config = ConversionConfig.model_validate(
            {"on_line_error": "skip", "strategy": "two-pass", "time_format": "rfc3339"}
        )
        assert config.on_line_error == OnLineError.SKIP_AND_REPORT
        assert config.strategy == Strategy.TWO_PASS
        assert config.time_format == TimeFormat.RFC3339

    def test_chunk_size_positive(self):
        with pytest.raises(ValidationError):
            ConversionConfig(chunk_size=0)


class TestConversionReport:
    def test_ok(self):
        assert ConversionReport().ok
        report = ConversionReport(issues=[LineIssue(line=1, kind="MissingFields", message="x")])
        assert not report.ok

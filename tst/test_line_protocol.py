"""Tests for line protocol parsing and serialization."""

import pytest

from tsdb_tools.errors import (
    DuplicateKey,
    InvalidFieldLiteral,
    InvalidTimestamp,
    LineError,
    MalformedPair,
    MissingFields,
    MissingMeasurement,
    UnrepresentableValue,
    UnterminatedString,
)
from tsdb_tools.line_protocol import parse_line, parse_lines, serialize_point, serialize_points
from tsdb_tools.models import (
    BooleanValue,
    FloatValue,
    IntegerValue,
    LineIssue,
    OnLineError,
    Point,
    StringValue,
    UnsignedValue,
)


class TestParseLine:
    def test_end_to_end_example(self, weather_line, weather_point):
        assert parse_line(weather_line) == weather_point

    def test_minimal_line(self):
        point = parse_line("cpu value=1")
        assert point.measurement == "cpu"
        assert point.tags == {}
        assert point.fields == {"value": FloatValue(value=1.0)}
        assert point.timestamp is None

    def test_all_field_types(self):
        point = parse_line('m f=1.5,i=-3i,u=3u,b=t,s="x" 10')
        assert point.fields == {
            "f": FloatValue(value=1.5),
            "i": IntegerValue(value=-3),
            "u": UnsignedValue(value=3),
            "b": BooleanValue(value=True),
            "s": StringValue(value="x"),
        }
        assert point.timestamp == 10

    def test_negative_timestamp(self):
        assert parse_line("m v=1 -1000").timestamp == -1000

    def test_preserves_tag_order(self):
        point = parse_line("m,z=1,a=2 v=1")
        assert list(point.tags) == ["z", "a"]

    def test_line_terminators_ignored(self):
        assert parse_line("m v=1 5\r\n") == parse_line("m v=1 5")


class TestComments:
    @pytest.mark.parametrize("line", ["", "   ", "\n", "# comment", "   # indented comment"])
    def test_skipped(self, line):
        assert parse_line(line) is None


class TestEscaping:
    def test_escaped_space_in_tag_value(self):
        point = parse_line("m,t=a\\ b v=1")
        assert point.tags == {"t": "a b"}

    def test_escaped_comma_and_equals_in_tag(self):
        point = parse_line("m,k\\=ey=v\\,al v=1")
        assert point.tags == {"k=ey": "v,al"}

    def test_escaped_measurement(self):
        point = parse_line("my\\ cpu\\,1,host=a v=1")
        assert point.measurement == "my cpu,1"

    def test_escaped_field_key(self):
        point = parse_line("m field\\ one=1i")
        assert point.fields == {"field one": IntegerValue(value=1)}

    def test_string_with_escaped_quotes(self):
        point = parse_line('m s="he said \\"hi\\""')
        assert point.fields["s"] == StringValue(value='he said "hi"')

    def test_delimiters_inside_quoted_string(self):
        point = parse_line('m s="a b,c=d",n=1i 99')
        assert point.fields == {"s": StringValue(value="a b,c=d"), "n": IntegerValue(value=1)}
        assert point.timestamp == 99

    def test_string_ending_in_backslash(self):
        point = parse_line('m s="dir\\\\",n=2i')
        assert point.fields["s"] == StringValue(value="dir\\")
        assert point.fields["n"] == IntegerValue(value=2)


class TestParseErrors:
    def test_empty_field_segment(self):
        with pytest.raises(MissingFields):
            parse_line("cpu,host=a  1234")

    def test_no_field_segment(self):
        with pytest.raises(MissingFields):
            parse_line("cpu,host=a")

    def test_duplicate_field_key(self):
        with pytest.raises(DuplicateKey):
            parse_line("cpu load=1,load=2 1234")

    def test_duplicate_tag_key(self):
        with pytest.raises(DuplicateKey):
            parse_line("cpu,host=a,host=b load=1")

    def test_missing_measurement(self):
        with pytest.raises(MissingMeasurement):
            parse_line(",host=a load=1")

    def test_invalid_timestamp(self):
        with pytest.raises(InvalidTimestamp):
            parse_line("cpu load=1 12:00")

    def test_timestamp_overflow(self):
        with pytest.raises(InvalidTimestamp):
            parse_line("cpu load=1 9223372036854775808")

    def test_invalid_field_literal(self):
        with pytest.raises(InvalidFieldLiteral):
            parse_line("cpu load=hot")

    def test_empty_field_value(self):
        with pytest.raises(InvalidFieldLiteral):
            parse_line("cpu load=")

    def test_unterminated_string(self):
        with pytest.raises(UnterminatedString):
            parse_line('cpu msg="never closed 123')

    @pytest.mark.parametrize(
        "line",
        ["cpu,host load=1", "cpu,=a load=1", "cpu,host= load=1", "cpu, load=1", "cpu load", "cpu =1", "cpu a=1,"],
    )
    def test_malformed_pairs(self, line):
        with pytest.raises(MalformedPair):
            parse_line(line)

    def test_error_carries_line_number(self):
        with pytest.raises(LineError) as excinfo:
            parse_line("cpu load=x", line_number=7)
        assert excinfo.value.line == 7
        assert str(excinfo.value).startswith("line 7:")


class TestParseLines:
    def test_numbers_lines_and_skips_comments(self):
        lines = ["# header", "a v=1", "", "b v=2"]
        result = list(parse_lines(lines))
        assert [number for number, _ in result] == [2, 4]
        assert [p.measurement for _, p in result] == ["a", "b"]

    def test_abort_raises_first_error(self):
        lines = ["a v=1", "bad", "c v=3"]
        with pytest.raises(MissingFields) as excinfo:
            list(parse_lines(lines, OnLineError.ABORT))
        assert excinfo.value.line == 2

    def test_skip_and_report(self):
        lines = ["a v=1", "bad", "c v=x", "d v=4"]
        issues = []
        result = list(parse_lines(lines, OnLineError.SKIP_AND_REPORT, issues))
        assert [p.measurement for _, p in result] == ["a", "d"]
        assert issues == [
            LineIssue(line=2, kind="MissingFields", message="line 2: missing field set"),
            LineIssue(line=3, kind="InvalidFieldLiteral", message="line 3: invalid field literal 'x'"),
        ]


class TestSerialize:
    def test_end_to_end_example(self, weather_line, weather_point):
        assert serialize_point(weather_point, sort_tags=False) == weather_line

    def test_without_timestamp(self):
        point = Point(measurement="m", fields={"v": IntegerValue(value=1)})
        assert serialize_point(point) == "m v=1i"

    def test_sort_tags(self):
        point = Point(measurement="m", tags={"z": "1", "a": "2"}, fields={"v": BooleanValue(value=True)})
        assert serialize_point(point) == "m,z=1,a=2 v=true"
        assert serialize_point(point, sort_tags=True) == "m,a=2,z=1 v=true"

    def test_escaping(self):
        point = Point(
            measurement="my cpu,x=1",
            tags={"the host": "a,b=c"},
            fields={"a field": StringValue(value='say "hi"')},
        )
        assert serialize_point(point) == 'my\\ cpu\\,x=1,the\\ host=a\\,b\\=c a\\ field="say \\"hi\\""'

    def test_serialize_points_adds_newlines(self, heterogeneous_points):
        lines = list(serialize_points(heterogeneous_points))
        assert lines == ["cpu,host=a load=1\n", "cpu,host=a,region=us load=2,temp=30\n"]

    @pytest.mark.parametrize(
        "line",
        [
            "cpu,host=a load=1",
            'disk,path=/var\\ log free=1024u,label="a \\"b\\" c" -5',
            "m\\ x,k\\,1=v\\=2 f\\=1=-0.5,g=1e-07,h=F",
        ],
    )
    def test_parse_serialize_parse(self, line):
        point = parse_line(line)
        assert parse_line(serialize_point(point)) == point

    def test_serialize_parse_roundtrip(self, string_point):
        assert parse_line(serialize_point(string_point)) == string_point


def _point(measurement="cpu", tags=None, fields=None):
    return Point(measurement=measurement, tags=tags or {}, fields=fields or {"x": FloatValue(value=1.0)})


class TestUnrepresentable:
    @pytest.mark.parametrize(
        "point",
        [
            _point(fields={"msg": StringValue(value="line1\nline2")}),
            _point(fields={"msg": StringValue(value="a\rb")}),
            _point(tags={"host": "a\nb"}),
            _point(measurement="c\npu"),
            _point(measurement="cpu\\"),
            _point(tags={"host\\": "a"}),
            _point(tags={"host": "a\\"}),
            _point(fields={"x\\": FloatValue(value=1.0)}),
            _point(measurement="#cpu"),
            _point(measurement="\tcpu"),
        ],
    )
    def test_rejected(self, point):
        with pytest.raises(UnrepresentableValue):
            serialize_point(point)

    def test_error_names_the_value(self):
        with pytest.raises(UnrepresentableValue) as excinfo:
            serialize_point(_point(tags={"host": "a\\"}))
        assert "tag value" in str(excinfo.value)
        assert excinfo.value.row is None

    @pytest.mark.parametrize(
        "point",
        [
            _point(tags={"host": "a\\b"}),
            _point(tags={"host": "a\\,b"}),
            _point(measurement="c#pu", fields={"msg": StringValue(value="ends with \\")}),
            _point(measurement=" cpu"),
        ],
    )
    def test_inner_backslashes_and_hashes_round_trip(self, point):
        assert parse_line(serialize_point(point)) == point


class TestAsciiDigits:
    @pytest.mark.parametrize("timestamp", ["١٢٣", "1٢", "１"])
    def test_non_ascii_timestamp(self, timestamp):
        with pytest.raises(InvalidTimestamp):
            parse_line(f"cpu x=1 {timestamp}")

    def test_non_ascii_field_digits(self):
        with pytest.raises(InvalidFieldLiteral):
            parse_line("cpu x=٣i")

"""
Pytest fixtures for tsdb_tools tests.

Provides line protocol samples, matching points and temporary files.
"""

import pytest

from tsdb_tools.models import FloatValue, IntegerValue, Point, StringValue


@pytest.fixture
def weather_line() -> str:
    return "weather,location=us-midwest temperature=82,humidity=65i 1465839830100400200"


@pytest.fixture
def weather_point() -> Point:
    return Point(
        measurement="weather",
        tags={"location": "us-midwest"},
        fields={"temperature": FloatValue(value=82.0), "humidity": IntegerValue(value=65)},
        timestamp=1465839830100400200,
    )


@pytest.fixture
def heterogeneous_points() -> list:
    """Two cpu points with different tag and field sets."""
    return [
        Point(measurement="cpu", tags={"host": "a"}, fields={"load": FloatValue(value=1.0)}),
        Point(
            measurement="cpu",
            tags={"host": "a", "region": "us"},
            fields={"load": FloatValue(value=2.0), "temp": FloatValue(value=30.0)},
        ),
    ]


@pytest.fixture
def line_protocol_text() -> str:
    """A small mixed dataset covering every field type and a comment."""
    return "\n".join(
        [
            "# cpu and disk samples",
            "cpu,host=server01,region=us-west usage=0.64,cores=8i,online=true 1451606400000000000",
            "cpu,host=server02 usage=0.5,cores=4i,online=f 1451606410000000000",
            "",
            'disk,host=server01,path=/var free=1024u,label="data, \\"primary\\"" 1451606420000000000',
            "disk,host=server02 free=2048u",
        ]
    ) + "\n"


@pytest.fixture
def lp_file(tmp_path, line_protocol_text):
    path = tmp_path / "metrics.lp"
    path.write_text(line_protocol_text, encoding="utf-8")
    return path


@pytest.fixture
def string_point() -> Point:
    return Point(measurement="log", fields={"msg": StringValue(value='he said "hi"')}, timestamp=1)

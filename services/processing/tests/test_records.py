"""
Tests for the shared observation record and its CSV adapter
"""
import pytest

from processing.errors import ParseError, RecordShapeError
from processing.records import (
    CSV_COLUMNS,
    Observation,
    parse_merged,
    render_merged,
)


MERGED_LINE = "032040:99999,2005,01,01,00,12.3,4.5,1013.2,180,5.2,4,0.0,0"


def make_observation(**overrides):
    values = dict(
        year=2005, month=1, day=1, hour=0,
        temperature=12.3, dew_point=4.5, pressure=1013.2,
        wind_direction=180, wind_speed=5.2, sky_condition=4,
        precip_1h=0.0, precip_6h=0,
    )
    values.update(overrides)
    return Observation(**values)


def test_csv_columns():
    assert len(CSV_COLUMNS) == 13
    assert CSV_COLUMNS[0] == "station_id"


def test_render_without_raw_time_pads():
    """Test observations built from integers render zero-padded time"""
    assert make_observation().to_csv() == "2005,01,01,00,12.3,4.5,1013.2,180,5.2,4,0.0,0"


def test_render_keeps_raw_time():
    obs = make_observation(raw_time=("2005", "1", "1", "0"))
    
    assert obs.to_csv().startswith("2005,1,1,0,")
    assert obs.key == "2005110"


def test_raw_time_ignored_in_equality():
    assert make_observation(raw_time=("2005", "01", "01", "00")) == make_observation()


def test_render_merged():
    assert render_merged("032040:99999", make_observation()) == MERGED_LINE


def test_parse_merged_types():
    """Test typed conversion of all 13 columns"""
    record = parse_merged(MERGED_LINE + "\n")
    values = record.values()
    
    assert values == (
        "032040:99999", 2005, 1, 1, 0,
        12.3, 4.5, 1013.2, 180, 5.2, 4, 0.0, 0.0,
    )
    assert [type(v) for v in values[:5]] == [str, int, int, int, int]
    assert isinstance(values[5], float)
    assert isinstance(values[8], int)
    assert isinstance(values[10], int)
    assert isinstance(values[12], float)


def test_parse_merged_raw_and_key():
    record = parse_merged(MERGED_LINE + "\r\n")
    
    assert record.raw == MERGED_LINE
    assert record.key == "032040:999992005010100"


def test_parse_then_render_is_stable():
    record = parse_merged(MERGED_LINE)
    
    assert record.observation.to_csv_fields()[:4] == ["2005", "01", "01", "00"]


@pytest.mark.parametrize("line", [
    "032040:99999,2005,01,01,00,12.3,4.5,1013.2,180,5.2,4,0.0",
    MERGED_LINE + ",extra",
    "",
])
def test_parse_merged_wrong_field_count(line):
    with pytest.raises(RecordShapeError) as exc_info:
        parse_merged(line)
    
    assert exc_info.value.expected == 13


def test_parse_merged_non_numeric():
    line = MERGED_LINE.replace("1013.2", "high")
    
    with pytest.raises(ParseError, match="pressure"):
        parse_merged(line)


def test_parse_merged_float_in_integer_column():
    line = MERGED_LINE.replace(",180,", ",180.5,")
    
    with pytest.raises(ParseError, match="wind_direction"):
        parse_merged(line)


@pytest.mark.parametrize("value", ["nan", "inf", "-inf", "1_013.2"])
def test_parse_merged_rejects_non_finite_and_underscores(value):
    """Test the CSV adapter rejects what the fixed-width parser rejects"""
    line = MERGED_LINE.replace("1013.2", value)
    
    with pytest.raises(ParseError, match="pressure"):
        parse_merged(line)


def test_parse_merged_rejects_underscore_in_integer_column():
    line = MERGED_LINE.replace(",180,", ",1_80,")
    
    with pytest.raises(ParseError, match="wind_direction"):
        parse_merged(line)

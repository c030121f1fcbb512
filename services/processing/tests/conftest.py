import gzip

import pytest


# Field widths of the ISD-Lite layout; one space separates each field
FIELD_WIDTHS = (4, 2, 2, 2, 6, 4, 5, 5, 5, 5, 5, 5)

SAMPLE_VALUES = ("2005", "01", "01", "00", 123, 45, 10132, 180, 52, 4, 0, -9999)

SAMPLE_CSV = "2005,01,01,00,12.3,4.5,1013.2,180,5.2,4,0.0,0"


def build_isd_line(*values) -> str:
    return " ".join(str(v).rjust(w) for v, w in zip(values, FIELD_WIDTHS))


@pytest.fixture
def isd_line():
    """Build an aligned ISD-Lite line from 12 field values"""
    return build_isd_line


@pytest.fixture
def sample_line():
    """One aligned observation with a sentinel in the 6-hour precipitation"""
    return build_isd_line(*SAMPLE_VALUES)


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV


@pytest.fixture
def write_gz():
    """Write text lines to a gzip file"""
    def _write(path, lines):
        path.parent.mkdir(parents=True, exist_ok=True)
        with gzip.open(path, "wt", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")
        return path
    return _write


@pytest.fixture
def read_gz():
    """Read all lines of a gzip file, terminators stripped"""
    def _read(path):
        with gzip.open(path, "rt", encoding="utf-8") as f:
            return [line.rstrip("\n") for line in f]
    return _read


@pytest.fixture
def hourly_lines(isd_line):
    """Lines for consecutive hours of 2005-01-01"""
    def _lines(count, year="2005"):
        return [
            isd_line(year, "01", "01", f"{hour:02d}", 10 * hour, 45, 10132, 180, 52, 4, 0, -9999)
            for hour in range(count)
        ]
    return _lines

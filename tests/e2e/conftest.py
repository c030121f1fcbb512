"""
Pytest fixtures for end-to-end tests.

Builds a data directory of ISD-Lite station files and provides an
in-memory sink so the transform and load stages can run back to back.
"""
import gzip
from concurrent.futures import Future

import pytest


# Field widths of the ISD-Lite layout; one space separates each field
FIELD_WIDTHS = (4, 2, 2, 2, 6, 4, 5, 5, 5, 5, 5, 5)


class MemorySink:
    """Collects submitted records and acknowledges them immediately."""
    
    def __init__(self):
        self.records = []
    
    def submit(self, record, consistency):
        self.records.append((record, consistency))
        future = Future()
        future.set_result(None)
        return future
    
    def flush(self):
        pass


@pytest.fixture
def memory_sink():
    return MemorySink()


@pytest.fixture
def station_file(tmp_path):
    """Write an ISD-Lite station file under data/<year>/"""
    def _write(year, name, rows):
        path = tmp_path / "data" / year / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with gzip.open(path, "wt", encoding="utf-8") as f:
            for values in rows:
                f.write(" ".join(str(v).rjust(w) for v, w in zip(values, FIELD_WIDTHS)) + "\n")
        return path
    return _write

"""
Pytest configuration and fixtures for loader service tests.
"""
import gzip
import threading
from concurrent.futures import Future

import pytest

from loader.config import LoaderConfig


MERGED_LINE = "032040:99999,2005,01,01,00,12.3,4.5,1013.2,180,5.2,4,0.0,0"


class RecordingSink:
    """Sink that acknowledges every write immediately."""
    
    def __init__(self, fail_with=None, fail_on=None):
        self.submitted = []
        self.flushed = 0
        self.closed = False
        self.fail_with = fail_with
        self.fail_on = fail_on
    
    def submit(self, record, consistency):
        self.submitted.append((record, consistency))
        future = Future()
        if self.fail_with is not None and len(self.submitted) == self.fail_on:
            future.set_exception(self.fail_with)
        else:
            future.set_result(None)
        return future
    
    def flush(self):
        self.flushed += 1
    
    def close(self):
        self.closed = True
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc, tb):
        self.close()


class PendingSink:
    """Sink whose writes stay unacknowledged until released."""
    
    def __init__(self):
        self.futures = []
    
    def submit(self, record, consistency):
        future = Future()
        self.futures.append(future)
        return future
    
    def flush(self):
        pass
    
    def release(self, count=None):
        for future in self.futures[:count]:
            if not future.done():
                future.set_result(None)


class ThreadedSink:
    """Sink acknowledging from worker threads, tracking peak concurrency."""
    
    def __init__(self, delay=0.001):
        self.delay = delay
        self.outstanding = 0
        self.peak = 0
        self.count = 0
        self._lock = threading.Lock()
    
    def submit(self, record, consistency):
        future = Future()
        with self._lock:
            self.outstanding += 1
            self.count += 1
            self.peak = max(self.peak, self.outstanding)
        
        def complete():
            with self._lock:
                self.outstanding -= 1
            future.set_result(None)
        
        threading.Timer(self.delay, complete).start()
        return future
    
    def flush(self):
        pass


@pytest.fixture
def loader_config():
    return LoaderConfig(
        max_in_flight=4,
        report_every=2,
        drain_timeout=5.0,
        on_malformed="abort",
    )


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def merged_line():
    return MERGED_LINE


@pytest.fixture
def write_archive(tmp_path):
    """Write merged lines into a gzip archive."""
    def _write(lines, name="2005.csv.gz"):
        path = tmp_path / name
        with gzip.open(path, "wt", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")
        return path
    return _write


@pytest.fixture
def hourly_records():
    """Merged lines for consecutive hours of one station."""
    def _lines(count):
        return [
            f"032040:99999,2005,01,{1 + hour // 24:02d},{hour % 24:02d},12.3,4.5,1013.2,180,5.2,4,0.0,0"
            for hour in range(count)
        ]
    return _lines


class FakeClock:
    """Manually advanced monotonic clock."""
    
    def __init__(self):
        self.now = 0.0
    
    def __call__(self):
        return self.now
    
    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_recording_sink():
    """RecordingSink factory, optionally failing the n-th write."""
    return RecordingSink


@pytest.fixture
def pending_sink():
    return PendingSink()


@pytest.fixture
def threaded_sink():
    return ThreadedSink()

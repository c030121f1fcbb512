"""
Bulk loader

Streams a merged yearly archive, decodes each line into typed columns and
submits inserts asynchronously. An in-flight window bounds the number of
unacknowledged submissions, and a drain barrier waits for every
acknowledgment before final metrics are reported.
"""
import gzip
import logging
import threading
import time
from concurrent import futures
from dataclasses import asdict, dataclass
from functools import partial
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from processing.errors import ParseError, RecordShapeError
from processing.records import LoadRecord, parse_merged

from .config import LoaderConfig, get_config
from .errors import ResourceUnavailableError, SubmissionError
from .metrics import MetricsRecorder

logger = logging.getLogger(__name__)


MALFORMED_POLICIES = ("abort", "skip")


@dataclass
class LoadSummary:
    """Final figures for one load run"""
    
    archive_path: str
    consistency: str
    total_records: int
    skipped_records: int
    p95_latency_ms: float
    p99_latency_ms: float
    mean_throughput: float
    one_minute_rate: float
    five_minute_rate: float
    fifteen_minute_rate: float
    elapsed_seconds: float
    
    def to_dict(self) -> Dict[str, any]:
        return asdict(self)


class LoadContext:
    """
    Per-load state: the sink handle, the metrics recorder and the set of
    pending submissions
    
    Submissions block once max_in_flight writes are unacknowledged.
    Acknowledgment callbacks may run on driver threads.
    """
    
    def __init__(
        self,
        sink,
        metrics: MetricsRecorder,
        max_in_flight: int = 512,
        acquire_timeout: Optional[float] = None
    ):
        if max_in_flight < 1:
            raise ValueError(f"max_in_flight must be positive, got {max_in_flight}")
        
        self.sink = sink
        self.metrics = metrics
        self.max_in_flight = max_in_flight
        self.acquire_timeout = acquire_timeout
        self._window = threading.BoundedSemaphore(max_in_flight)
        self._lock = threading.Lock()
        self._pending = set()
        self._failures: List[BaseException] = []
    
    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)
    
    @property
    def failures(self) -> List[BaseException]:
        with self._lock:
            return list(self._failures)
    
    def submit(self, record: LoadRecord, consistency: Union[str, int]) -> futures.Future:
        """Issue one write once the in-flight window has room"""
        if not self._window.acquire(timeout=self.acquire_timeout):
            raise SubmissionError(
                f"No acknowledgment freed the in-flight window within "
                f"{self.acquire_timeout}s",
                pending=self.pending,
            )
        
        started = time.perf_counter_ns()
        try:
            future = self.sink.submit(record, consistency)
        except BaseException:
            self._window.release()
            raise
        
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(partial(self._on_done, started))
        return future
    
    def _on_done(self, started: int, future: futures.Future):
        elapsed = time.perf_counter_ns() - started
        
        if future.cancelled():
            error = futures.CancelledError()
        else:
            error = future.exception()
        
        with self._lock:
            self._pending.discard(future)
            if error is not None:
                self._failures.append(error)
        self._window.release()
        
        if error is None:
            self.metrics.record(elapsed)
        else:
            logger.error(f"Submission failed: {error!r}")
    
    def raise_for_failures(self):
        """Raise if any acknowledgment reported an error"""
        failures = self.failures
        if not failures:
            return
        
        first = failures[0]
        if isinstance(first, ResourceUnavailableError):
            raise first
        raise SubmissionError(
            f"{len(failures)} submissions failed, first: {first!r}",
            failed=len(failures),
        ) from first
    
    def drain(self, timeout: Optional[float] = None) -> int:
        """
        Flush the sink and wait for every pending submission
        
        Returns:
            Number of submissions still unacknowledged after the timeout
        """
        self.sink.flush()
        
        with self._lock:
            pending = list(self._pending)
        
        if pending:
            logger.info(f"Waiting for {len(pending)} pending submissions")
        
        _, not_done = futures.wait(pending, timeout=timeout)
        return len(not_done)


class BulkLoader:
    """Loads a merged archive into a sink with bounded concurrency"""
    
    def __init__(
        self,
        config: Optional[LoaderConfig] = None,
        metrics_factory: Callable[[], MetricsRecorder] = MetricsRecorder
    ):
        """
        Initialize loader
        
        Args:
            config: Loader configuration (loaded from env if omitted)
            metrics_factory: Builds the recorder for each load
        """
        self.config = config or get_config()
        self.metrics_factory = metrics_factory
        
        if self.config.on_malformed not in MALFORMED_POLICIES:
            raise ValueError(
                f"Unknown malformed-record policy: {self.config.on_malformed}. "
                f"Must be one of {list(MALFORMED_POLICIES)}"
            )
    
    def load(
        self,
        archive_path: Union[str, Path],
        sink,
        consistency: Optional[Union[str, int]] = None
    ) -> LoadSummary:
        """
        Stream an archive into the sink
        
        Args:
            archive_path: Merged .csv.gz archive
            sink: Connected sink exposing submit/flush
            consistency: Write consistency (default from config)
        
        Returns:
            LoadSummary once every submission is acknowledged
        
        Raises:
            RecordShapeError, ParseError: Malformed line under the abort policy
            SubmissionError: A write failed or was never acknowledged
            ResourceUnavailableError: The sink became unreachable
        """
        if consistency is None:
            consistency = self.config.consistency
        
        context = LoadContext(
            sink,
            self.metrics_factory(),
            max_in_flight=self.config.max_in_flight,
            acquire_timeout=self.config.drain_timeout,
        )
        start_time = time.monotonic()
        
        logger.info(f"Loading {archive_path} at consistency {consistency}")
        
        try:
            total, skipped = self._submit_all(Path(archive_path), context, consistency)
        except BaseException:
            unacknowledged = context.drain(self.config.drain_timeout)
            if unacknowledged:
                logger.warning(f"Aborting with {unacknowledged} unacknowledged submissions")
            raise
        
        unacknowledged = context.drain(self.config.drain_timeout)
        if unacknowledged:
            raise SubmissionError(
                f"{unacknowledged} submissions unacknowledged after "
                f"{self.config.drain_timeout}s",
                pending=unacknowledged,
            )
        context.raise_for_failures()
        
        metrics = context.metrics
        summary = LoadSummary(
            archive_path=str(archive_path),
            consistency=str(consistency),
            total_records=total,
            skipped_records=skipped,
            p95_latency_ms=metrics.percentile(95),
            p99_latency_ms=metrics.percentile(99),
            mean_throughput=metrics.mean_rate,
            one_minute_rate=metrics.rate("1m"),
            five_minute_rate=metrics.rate("5m"),
            fifteen_minute_rate=metrics.rate("15m"),
            elapsed_seconds=time.monotonic() - start_time,
        )
        self._report_final(summary)
        return summary
    
    def _submit_all(self, archive_path: Path, context: LoadContext, consistency):
        total = 0
        skipped = 0
        
        with gzip.open(archive_path, "rt", encoding="utf-8") as reader:
            for line_number, line in enumerate(reader, start=1):
                if not line.strip():
                    continue
                
                try:
                    record = parse_merged(line)
                except (RecordShapeError, ParseError) as e:
                    if self.config.on_malformed == "skip":
                        skipped += 1
                        logger.warning(f"Skipping {archive_path}:{line_number}: {e}")
                        continue
                    logger.error(f"Malformed record at {archive_path}:{line_number}: {e}")
                    raise
                
                context.raise_for_failures()
                context.submit(record, consistency)
                total += 1
                
                if total % self.config.report_every == 0:
                    self._report_progress(total, context.metrics)
        
        return total, skipped
    
    def _report_progress(self, total: int, metrics: MetricsRecorder):
        logger.info(
            f"Line number: {total}\t"
            f"Ops/s (1m/5m/15m): {metrics.rate('1m'):.1f}/"
            f"{metrics.rate('5m'):.1f}/{metrics.rate('15m'):.1f}\t"
            f"p95 insert latency: {metrics.percentile(95):.3f} ms\t"
            f"p99 insert latency: {metrics.percentile(99):.3f} ms"
        )
    
    def _report_final(self, summary: LoadSummary):
        logger.info("Load complete")
        logger.info(f"Total records: {summary.total_records} (skipped {summary.skipped_records})")
        logger.info(f"Ops/Sec (1 Minute rate): {summary.one_minute_rate:.1f}")
        logger.info(f"Ops/Sec (5 Minute rate): {summary.five_minute_rate:.1f}")
        logger.info(f"Ops/Sec (15 Minute rate): {summary.fifteen_minute_rate:.1f}")
        logger.info(f"95th percentile inserts: {summary.p95_latency_ms:.3f} ms")
        logger.info(f"99th percentile inserts: {summary.p99_latency_ms:.3f} ms")


def create_loader(config: Optional[LoaderConfig] = None) -> BulkLoader:
    """
    Factory function to create a bulk loader
    
    Args:
        config: Loader configuration
    
    Returns:
        BulkLoader instance
    """
    return BulkLoader(config)

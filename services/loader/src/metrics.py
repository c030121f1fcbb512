"""
Submission metrics: latency histogram and rolling throughput.

Throughput uses exponentially weighted moving averages ticked every five
seconds over one, five and fifteen minute windows. Latencies are sampled
into a fixed-size uniform reservoir.
"""
import math
import random
import threading
import time
from typing import Callable, Dict, Optional, Union

import numpy as np


TICK_INTERVAL = 5.0
WINDOWS = {"1m": 1, "5m": 5, "15m": 15}
DEFAULT_RESERVOIR_SIZE = 1028


class EWMA:
    """Exponentially weighted moving average of events per second."""
    
    def __init__(self, minutes: int, interval: float = TICK_INTERVAL):
        self.interval = interval
        self.alpha = 1 - math.exp(-interval / 60.0 / minutes)
        self.rate = 0.0
        self._uncounted = 0
        self._initialized = False
    
    def update(self, n: int = 1):
        self._uncounted += n
    
    def tick(self):
        instant = self._uncounted / self.interval
        self._uncounted = 0
        if self._initialized:
            self.rate += self.alpha * (instant - self.rate)
        else:
            self.rate = instant
            self._initialized = True


class UniformReservoir:
    """Vitter's algorithm R over a bounded sample."""
    
    def __init__(self, size: int = DEFAULT_RESERVOIR_SIZE, rng: Optional[random.Random] = None):
        self.size = size
        self.values = []
        self.count = 0
        self._rng = rng or random.Random()
    
    def update(self, value: float):
        self.count += 1
        if len(self.values) < self.size:
            self.values.append(value)
        else:
            index = self._rng.randrange(self.count)
            if index < self.size:
                self.values[index] = value


class MetricsRecorder:
    """Timer histogram plus rolling throughput for one load run."""
    
    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        reservoir_size: int = DEFAULT_RESERVOIR_SIZE,
        rng: Optional[random.Random] = None,
    ):
        """Initialize recorder.

        Args:
            clock: Monotonic clock in seconds (injectable for tests)
            reservoir_size: Number of latency samples kept
            rng: Random source for reservoir replacement
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._start = clock()
        self._last_tick = self._start
        self._meters = {name: EWMA(minutes) for name, minutes in WINDOWS.items()}
        self._reservoir = UniformReservoir(reservoir_size, rng)
        self.count = 0
    
    def _tick_if_necessary(self):
        now = self._clock()
        age = now - self._last_tick
        if age > TICK_INTERVAL:
            self._last_tick = now - age % TICK_INTERVAL
            for _ in range(int(age // TICK_INTERVAL)):
                for meter in self._meters.values():
                    meter.tick()
    
    def record(self, duration_nanos: int):
        """Record one completed submission and its latency."""
        with self._lock:
            self._tick_if_necessary()
            self.count += 1
            for meter in self._meters.values():
                meter.update()
            self._reservoir.update(duration_nanos)
    
    def rate(self, window: Union[str, int] = "1m") -> float:
        """Rolling throughput in operations per second.

        Args:
            window: '1m', '5m', '15m' (or 1, 5, 15 minutes)
        """
        key = f"{window}m" if isinstance(window, int) else window
        if key not in self._meters:
            raise ValueError(f"Unknown window: {window}. Must be one of {list(WINDOWS)}")
        
        with self._lock:
            self._tick_if_necessary()
            return self._meters[key].rate
    
    @property
    def mean_rate(self) -> float:
        """Operations per second since the recorder was created."""
        elapsed = self._clock() - self._start
        if elapsed <= 0:
            return 0.0
        return self.count / elapsed
    
    def percentile(self, p: float) -> float:
        """Latency at percentile p (0-100) in milliseconds."""
        if not 0 <= p <= 100:
            raise ValueError(f"Percentile must be within [0, 100], got {p}")
        
        with self._lock:
            values = list(self._reservoir.values)
        
        if not values:
            return 0.0
        return float(np.percentile(values, p)) / 1_000_000
    
    def snapshot(self) -> Dict[str, float]:
        """Current count, rates and tail latencies."""
        return {
            "count": self.count,
            "one_minute_rate": self.rate("1m"),
            "five_minute_rate": self.rate("5m"),
            "fifteen_minute_rate": self.rate("15m"),
            "mean_rate": self.mean_rate,
            "p95_latency_ms": self.percentile(95),
            "p99_latency_ms": self.percentile(99),
        }

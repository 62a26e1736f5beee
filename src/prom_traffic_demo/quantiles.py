# src/prom_traffic_demo/quantiles.py
"""Targeted quantile estimation for summaries.

Implements the CKMS biased-quantile stream ("Effective Computation of Biased
Quantiles over Data Streams") restricted to a fixed set of target quantiles,
plus the rotating age buckets Prometheus clients use to give a summary a
sliding time window.
"""
import math
import time
from typing import Callable, Dict, List, Mapping

BUFFER_SIZE = 500
DEFAULT_MAX_AGE = 600.0
DEFAULT_AGE_BUCKETS = 5


class _Sample:
    __slots__ = ("value", "width", "delta")

    def __init__(self, value: float, width: float, delta: float):
        self.value = value
        self.width = width
        self.delta = delta


class TargetedQuantileStream:
    """Streaming estimator for a fixed map of {quantile: allowed rank error}."""

    def __init__(self, objectives: Mapping[float, float]):
        for q, eps in objectives.items():
            if not 0.0 < q < 1.0:
                raise ValueError(f"quantile must be in (0, 1), got {q}")
            if eps < 0.0:
                raise ValueError(f"error tolerance must be >= 0, got {eps}")
        self._targets = sorted(objectives.items())
        self._samples: List[_Sample] = []
        self._buffer: List[float] = []
        self._n = 0.0
        self._buffer_sorted = True

    def insert(self, value: float):
        self._buffer.append(value)
        self._buffer_sorted = False
        if len(self._buffer) == BUFFER_SIZE:
            self._flush()

    def count(self) -> int:
        return len(self._buffer) + int(self._n)

    def reset(self):
        self._samples = []
        self._buffer = []
        self._n = 0.0
        self._buffer_sorted = True

    def query(self, q: float) -> float:
        """Estimate quantile q. Returns 0.0 when the stream is empty."""
        if not self._samples:
            # nothing merged yet: the buffer is small enough to answer exactly
            if not self._buffer:
                return 0.0
            self._sort_buffer()
            i = math.ceil(len(self._buffer) * q)
            if i > 0:
                i -= 1
            return self._buffer[i]
        self._flush()
        return self._query(q)

    def _sort_buffer(self):
        if not self._buffer_sorted:
            self._buffer.sort()
            self._buffer_sorted = True

    def _flush(self):
        self._sort_buffer()
        self._merge(self._buffer)
        self._buffer = []

    def _invariant(self, r: float) -> float:
        m = math.inf
        for q, eps in self._targets:
            if q * self._n <= r:
                f = (2 * eps * r) / q
            else:
                f = (2 * eps * (self._n - r)) / (1 - q)
            if f < m:
                m = f
        return m

    def _merge(self, values: List[float]):
        samples = self._samples
        r = 0.0
        i = 0
        for value in values:
            while i < len(samples):
                c = samples[i]
                if c.value > value:
                    delta = max(0.0, math.floor(self._invariant(r)) - 1)
                    samples.insert(i, _Sample(value, 1.0, delta))
                    i += 1
                    break
                r += c.width
                i += 1
            else:
                samples.append(_Sample(value, 1.0, 0.0))
                i += 1
            self._n += 1
            r += 1
        self._compress()

    def _compress(self):
        samples = self._samples
        if len(samples) < 2:
            return
        x = samples[-1]
        r = self._n - 1 - x.width
        for i in range(len(samples) - 2, -1, -1):
            c = samples[i]
            if c.width + x.width + x.delta <= self._invariant(r):
                x.width += c.width
                del samples[i]
            else:
                x = c
            r -= c.width

    def _query(self, q: float) -> float:
        samples = self._samples
        t = math.ceil(q * self._n)
        t += math.ceil(self._invariant(t) / 2)
        p = samples[0]
        r = 0.0
        for c in samples[1:]:
            r += p.width
            if r + c.width + c.delta > t:
                return p.value
            p = c
        return p.value


class WindowedQuantiles:
    """Quantiles over the last max_age seconds, using rotating age buckets.

    Every observation is inserted into all bucket streams. Queries read the
    head stream, which is reset and replaced by the next one every
    max_age / age_buckets seconds. Not thread-safe; callers hold a lock.
    """

    def __init__(
        self,
        objectives: Mapping[float, float],
        max_age: float = DEFAULT_MAX_AGE,
        age_buckets: int = DEFAULT_AGE_BUCKETS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_age <= 0:
            raise ValueError("max_age must be positive")
        if age_buckets < 1:
            raise ValueError("age_buckets must be at least 1")
        self._objectives = dict(objectives)
        self._clock = clock
        self._streams = [TargetedQuantileStream(self._objectives) for _ in range(age_buckets)]
        self._stream_duration = max_age / age_buckets
        self._head = 0
        self._head_expires = clock() + self._stream_duration

    def observe(self, value: float):
        self._rotate(self._clock())
        for stream in self._streams:
            stream.insert(value)

    def quantiles(self) -> Dict[float, float]:
        """Current estimate per objective; NaN when the window is empty."""
        self._rotate(self._clock())
        head = self._streams[self._head]
        if head.count() == 0:
            return {q: math.nan for q in sorted(self._objectives)}
        return {q: head.query(q) for q in sorted(self._objectives)}

    def _rotate(self, now: float):
        if now - self._head_expires >= self._stream_duration * len(self._streams):
            # idle for longer than the whole window
            for stream in self._streams:
                stream.reset()
            self._head_expires = now + self._stream_duration
            return
        while now >= self._head_expires:
            self._streams[self._head].reset()
            self._head = (self._head + 1) % len(self._streams)
            self._head_expires += self._stream_duration

"""Tests for targeted quantile streams and their sliding window."""

import math
import random

import pytest

from prom_traffic_demo.quantiles import TargetedQuantileStream, WindowedQuantiles

OBJECTIVES = {0.5: 0.05, 0.9: 0.01, 0.99: 0.001}


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def test_empty_stream_returns_zero():
    stream = TargetedQuantileStream(OBJECTIVES)
    assert stream.count() == 0
    assert stream.query(0.5) == 0.0


def test_small_stream_is_exact():
    stream = TargetedQuantileStream(OBJECTIVES)
    for v in [5, 1, 4, 2, 3]:
        stream.insert(float(v))
    assert stream.count() == 5
    assert stream.query(0.5) == 3.0
    assert stream.query(0.99) == 5.0


@pytest.mark.parametrize("q,eps", sorted(OBJECTIVES.items()))
def test_large_stream_within_rank_error(q, eps):
    n = 20000
    values = list(range(n))
    random.Random(3).shuffle(values)
    stream = TargetedQuantileStream(OBJECTIVES)
    for v in values:
        stream.insert(float(v))

    assert stream.count() == n
    # values are their own ranks, so the estimate is a rank
    estimate = stream.query(q)
    assert abs(estimate - q * n) <= eps * n + 1


def test_stream_compresses():
    stream = TargetedQuantileStream(OBJECTIVES)
    for v in range(20000):
        stream.insert(float(v))
    stream.query(0.5)
    assert len(stream._samples) < 20000


def test_reset_clears_stream():
    stream = TargetedQuantileStream(OBJECTIVES)
    for v in range(1000):
        stream.insert(float(v))
    stream.reset()
    assert stream.count() == 0
    assert stream.query(0.9) == 0.0


def test_invalid_objectives_rejected():
    with pytest.raises(ValueError):
        TargetedQuantileStream({1.5: 0.01})
    with pytest.raises(ValueError):
        TargetedQuantileStream({0.5: -0.1})


def test_window_reports_nan_when_empty():
    window = WindowedQuantiles(OBJECTIVES, max_age=10, age_buckets=5, clock=FakeClock())
    result = window.quantiles()
    assert sorted(result) == [0.5, 0.9, 0.99]
    assert all(math.isnan(v) for v in result.values())


def test_window_keeps_values_across_rotation():
    clock = FakeClock()
    window = WindowedQuantiles(OBJECTIVES, max_age=10, age_buckets=5, clock=clock)
    window.observe(1.0)

    clock.now = 2.5
    assert window.quantiles()[0.5] == 1.0


def test_window_forgets_values_after_max_age():
    clock = FakeClock()
    window = WindowedQuantiles(OBJECTIVES, max_age=10, age_buckets=5, clock=clock)
    window.observe(1.0)

    clock.now = 10.5
    assert all(math.isnan(v) for v in window.quantiles().values())

    window.observe(2.0)
    assert window.quantiles()[0.5] == 2.0


def test_window_handles_long_idle_period():
    clock = FakeClock()
    window = WindowedQuantiles(OBJECTIVES, max_age=10, age_buckets=5, clock=clock)
    window.observe(1.0)

    clock.now = 10_000.0
    assert all(math.isnan(v) for v in window.quantiles().values())

# src/prom_traffic_demo/metrics.py
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    disable_created_metrics,
    generate_latest,
)
from prometheus_client.core import SummaryMetricFamily
from prometheus_client.registry import Collector
from prometheus_client.utils import floatToGoString

from .quantiles import DEFAULT_AGE_BUCKETS, DEFAULT_MAX_AGE, WindowedQuantiles

DURATION_BUCKETS = (0.05, 0.1, 0.2, 0.3, 0.4, 0.5, 0.75, 1, 2.5)
SUMMARY_OBJECTIVES = {0.5: 0.05, 0.9: 0.01, 0.99: 0.001}
DURATION_LABELS = ("code", "handler", "method", "endpoint")
REQUEST_LABELS = ("code", "method")

class DuplicateMetricError(ValueError):
    """A collector's series clash with one already in the registry."""


def register(registry: CollectorRegistry, collector: Collector):
    try:
        registry.register(collector)
    except ValueError as e:
        raise DuplicateMetricError(str(e)) from e


class _QuantileSummaryChild:
    def __init__(self, objectives, max_age, age_buckets, clock):
        self._lock = threading.Lock()
        self._count = 0
        self._sum = 0.0
        self._window = WindowedQuantiles(objectives, max_age, age_buckets, clock)

    def observe(self, amount: float):
        with self._lock:
            self._count += 1
            self._sum += amount
            self._window.observe(amount)

    def snapshot(self) -> Tuple[int, float, Dict[float, float]]:
        with self._lock:
            return self._count, self._sum, self._window.quantiles()


class QuantileSummary(Collector):
    """Summary vector exporting quantile estimates alongside _sum and _count.

    prometheus_client's own Summary only tracks sum and count, so this
    collector keeps a sliding-window quantile estimator per label set.
    """

    def __init__(
        self,
        name: str,
        documentation: str,
        labelnames: Iterable[str] = (),
        objectives: Optional[Mapping[float, float]] = None,
        max_age: float = DEFAULT_MAX_AGE,
        age_buckets: int = DEFAULT_AGE_BUCKETS,
        registry: Optional[CollectorRegistry] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._name = name
        self._documentation = documentation
        self._labelnames = tuple(labelnames)
        if "quantile" in self._labelnames:
            raise ValueError("Reserved label metric name: quantile")
        self._objectives = dict(SUMMARY_OBJECTIVES if objectives is None else objectives)
        self._max_age = max_age
        self._age_buckets = age_buckets
        self._clock = clock
        self._lock = threading.Lock()
        self._children: Dict[Tuple[str, ...], _QuantileSummaryChild] = {}
        if registry is not None:
            register(registry, self)

    def labels(self, *labelvalues, **labelkwargs) -> _QuantileSummaryChild:
        if labelvalues and labelkwargs:
            raise ValueError("Can't pass both *args and **kwargs")
        if labelkwargs:
            if sorted(labelkwargs) != sorted(self._labelnames):
                raise ValueError("Incorrect label names")
            labelvalues = tuple(str(labelkwargs[name]) for name in self._labelnames)
        else:
            if len(labelvalues) != len(self._labelnames):
                raise ValueError("Incorrect label count")
            labelvalues = tuple(str(v) for v in labelvalues)
        with self._lock:
            child = self._children.get(labelvalues)
            if child is None:
                child = _QuantileSummaryChild(
                    self._objectives, self._max_age, self._age_buckets, self._clock
                )
                self._children[labelvalues] = child
            return child

    def describe(self):
        return [SummaryMetricFamily(self._name, self._documentation, labels=self._labelnames)]

    def collect(self):
        family = SummaryMetricFamily(self._name, self._documentation, labels=self._labelnames)
        with self._lock:
            children = list(self._children.items())
        for labelvalues, child in children:
            count, total, quantiles = child.snapshot()
            labels = dict(zip(self._labelnames, labelvalues))
            for q, value in quantiles.items():
                family.add_sample(self._name, dict(labels, quantile=floatToGoString(q)), value)
            family.add_sample(self._name + "_sum", labels, total)
            family.add_sample(self._name + "_count", labels, count)
        yield family


@dataclass
class ServiceMetrics:
    registry: CollectorRegistry
    version: Gauge
    requests_total: Counter
    request_duration: Histogram
    request_summary_duration: QuantileSummary

    def duration_observer(self, kind: Optional[str]):
        if kind == "histogram":
            return self.request_duration
        if kind == "summary":
            return self.request_summary_duration
        return None


def create_metrics(version: str, registry: Optional[CollectorRegistry] = None) -> ServiceMetrics:
    """Build and register the service instruments.

    Raises DuplicateMetricError if any name is already taken in `registry`.
    """
    if registry is None:
        registry = CollectorRegistry()
    # no *_created series in the exposition
    disable_created_metrics()

    version_gauge = Gauge(
        "version",
        "Version information about this binary",
        ["version"],
        registry=None,
    )
    requests_total = Counter(
        "http_requests_total",
        "Count of all HTTP requests",
        REQUEST_LABELS,
        registry=None,
    )
    request_duration = Histogram(
        "http_request_duration_seconds",
        "Duration of all HTTP requests",
        DURATION_LABELS,
        buckets=DURATION_BUCKETS,
        registry=None,
    )
    request_summary_duration = QuantileSummary(
        "http_request_summary_duration_seconds",
        "Summary of HTTP requests duration",
        DURATION_LABELS,
        objectives=SUMMARY_OBJECTIVES,
    )
    for collector in (requests_total, request_duration, request_summary_duration, version_gauge):
        register(registry, collector)

    version_gauge.labels(version=version).set(1)
    return ServiceMetrics(
        registry=registry,
        version=version_gauge,
        requests_total=requests_total,
        request_duration=request_duration,
        request_summary_duration=request_summary_duration,
    )


def render_exposition(registry: CollectorRegistry) -> bytes:
    """Text exposition of every registered collector."""
    return generate_latest(registry)

"""Pytest configuration and fixtures."""

from typing import List

import pytest
from fastapi.testclient import TestClient

from prom_traffic_demo.app import create_app
from prom_traffic_demo.handlers import DelaySource, Handlers
from prom_traffic_demo.metrics import create_metrics


class SleepRecorder:
    """Stands in for asyncio.sleep; remembers requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


@pytest.fixture
def metrics():
    return create_metrics("test")


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def handlers(sleeps):
    return Handlers(DelaySource(seed=1234), sleep=sleeps)


@pytest.fixture
def client(metrics, handlers):
    with TestClient(create_app(metrics, handlers)) as c:
        yield c

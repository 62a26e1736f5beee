# src/prom_traffic_demo/instrumentation.py
import inspect
import time
from typing import Awaitable, Callable, Union

from fastapi import Request
from fastapi.responses import PlainTextResponse, Response

from .metrics import ServiceMetrics
from .models import RouteSpec

KNOWN_METHODS = frozenset(
    ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "CONNECT", "OPTIONS", "TRACE"]
)

HandlerResult = Union[str, bytes, Response]
Handler = Callable[[], Union[HandlerResult, Awaitable[HandlerResult]]]


def method_label(method: str) -> str:
    # keep the label set bounded: arbitrary verbs collapse to one value
    method = method.upper()
    return method if method in KNOWN_METHODS else "unknown"


def to_response(result: HandlerResult) -> Response:
    if isinstance(result, Response):
        return result
    # a bare body means the handler never set a status: 200
    return PlainTextResponse(result)


def instrument(handler: Handler, route: RouteSpec, metrics: ServiceMetrics):
    """Wrap `handler` so every call is counted and timed.

    The returned endpoint increments http_requests_total{code, method} once
    and, when the route has a duration instrument, observes the elapsed
    seconds with {code, handler, method, endpoint}. The response is whatever
    the handler produced. Both plain and async handlers are accepted.
    """
    observer = metrics.duration_observer(route.observer)

    async def endpoint(request: Request):
        start = time.perf_counter()
        result = handler()
        if inspect.isawaitable(result):
            result = await result
        response = to_response(result)
        elapsed = time.perf_counter() - start

        code = str(response.status_code)
        method = method_label(request.method)
        if observer is not None:
            observer.labels(
                code=code, handler=route.handler, method=method, endpoint=route.path
            ).observe(elapsed)
        metrics.requests_total.labels(code=code, method=method).inc()
        return response

    return endpoint

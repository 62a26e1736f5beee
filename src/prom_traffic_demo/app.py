# src/prom_traffic_demo/app.py
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST

from .handlers import DelaySource, Handlers
from .instrumentation import instrument
from .metrics import ServiceMetrics, render_exposition
from .models import RouteSpec

logger = logging.getLogger(__name__)

# (Handlers attribute, route labels)
ROUTES = [
    ("stable", RouteSpec(path="/", handler="found")),
    ("fast_random", RouteSpec(path="/fast-random", handler="found")),
    ("slow_random", RouteSpec(path="/slow-random", handler="found")),
    # same handler as /fast-random, timed into the summary instead
    ("fast_random", RouteSpec(path="/summary", handler="found", observer="summary")),
    ("not_found", RouteSpec(path="/error", handler="notfound", observer=None)),
    ("internal_error", RouteSpec(path="/internal-error", handler="internalerror", observer=None)),
]


def create_app(metrics: ServiceMetrics, handlers: Optional[Handlers] = None) -> FastAPI:
    if handlers is None:
        handlers = Handlers(DelaySource())

    app = FastAPI(
        title="Prometheus traffic demo",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.metrics = metrics

    # plain routes with methods=None answer every verb, custom ones included
    for attr, route in ROUTES:
        app.add_route(
            route.path,
            instrument(getattr(handlers, attr), route, metrics),
            methods=None,
            name=route.path.strip("/") or "root",
        )

    # metrics endpoint for Prometheus to scrape; never instrumented
    async def scrape(request: Request):
        return Response(content=render_exposition(metrics.registry), media_type=CONTENT_TYPE_LATEST)

    app.add_route("/metrics", scrape, methods=None, name="metrics")

    logger.debug("Registered %d instrumented routes", len(ROUTES))
    return app

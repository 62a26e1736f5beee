# src/prom_traffic_demo/server.py
import logging
import sys

import uvicorn
from pydantic import ValidationError

from .app import ROUTES, create_app
from .config import Settings, configure_logging, load_settings
from .metrics import DuplicateMetricError, create_metrics

logger = logging.getLogger(__name__)


def serve(app, settings: Settings):
    """Run the blocking listen loop until the process is terminated."""
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


def main():
    try:
        settings = load_settings()
    except ValidationError as e:
        configure_logging()
        logger.critical("Invalid configuration: %s", e)
        sys.exit(1)

    configure_logging(settings.log_level)

    try:
        metrics = create_metrics(settings.app_version)
    except DuplicateMetricError as e:
        logger.critical("Metric registration failed: %s", e)
        sys.exit(1)

    app = create_app(metrics)
    logger.info(
        "Starting traffic demo v%s on %s:%d with %d routes",
        settings.app_version,
        settings.host,
        settings.port,
        len(ROUTES) + 1,
    )
    # uvicorn logs bind failures itself and exits with status 1
    serve(app, settings)


if __name__ == "__main__":
    main()

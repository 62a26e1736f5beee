# src/prom_traffic_demo/config.py
import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel

from . import __version__

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080
    app_version: str = __version__
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Read settings from the environment (and a .env file if present).

    Unset variables fall back to the fixed defaults: 0.0.0.0:8080.
    A non-numeric DEMO_PORT raises pydantic.ValidationError.
    """
    load_dotenv()
    return Settings(
        host=os.getenv("DEMO_HOST", "0.0.0.0"),
        port=os.getenv("DEMO_PORT", "8080"),
        app_version=os.getenv("APP_VERSION", __version__),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )

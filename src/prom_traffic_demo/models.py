# src/prom_traffic_demo/models.py
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


class RouteSpec(BaseModel):
    """One entry of the route table: the path and its fixed metric labels."""

    model_config = ConfigDict(frozen=True)

    path: str
    handler: str
    # which duration instrument receives the observation; None = counter only
    observer: Optional[Literal["histogram", "summary"]] = "histogram"

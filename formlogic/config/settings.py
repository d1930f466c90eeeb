"""Runtime settings for the visibility engine."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class EngineSettings(BaseModel):
    metadata: dict = Field(default_factory=dict)
    debug: bool = False
    log_level: str = "INFO"
    clear_hidden_values: bool = True
    # visible: fields inside a reported cycle stay visible until it is resolved
    cyclic_field_policy: Literal["visible", "evaluate"] = "visible"

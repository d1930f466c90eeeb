"""Timing utilities for engine stages."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Dict


@contextmanager
def timed(stage: str, metrics: Dict[str, float]):
    start = time.perf_counter()
    try:
        yield
    finally:
        metrics[f"duration_{stage}"] = round((time.perf_counter() - start) * 1000, 3)

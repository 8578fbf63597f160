# path: roadtrace/config.py

"""
Settings loaded from ROADTRACE_* environment variables.

Example: ROADTRACE_SNAP_TIMEOUT_S=5 -> Settings.snap_timeout_s == 5.0
Unset variables keep the model defaults.
"""

from __future__ import annotations

import math
import os
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, Field, field_validator


ENV_PREFIX = "ROADTRACE_"
DEFAULT_API_TIMEOUT_MS = 12000
DEFAULT_NEAREST_URL = "https://router.project-osrm.org/nearest/v1/driving"
SNAP_PATH = "/api/sumo/roads/snap"

SnapStrategyName = Literal["batch", "per-point"]
SnapFailurePolicy = Literal["raise", "densified"]
PointFailurePolicy = Literal["keep-original", "drop", "propagate"]


class Settings(BaseModel):
    api_url: Optional[str] = None
    api_token: Optional[str] = None
    api_timeout_ms: int = DEFAULT_API_TIMEOUT_MS

    snap_url: Optional[str] = None
    snap_timeout_s: float = Field(default=10.0, gt=0)
    snap_strategy: SnapStrategyName = "batch"
    steps_per_segment: int = Field(default=20, ge=1)
    server_steps_per_segment: int = Field(default=1, ge=1)
    dedupe_epsilon: float = Field(default=0.00001, ge=0)
    on_snap_failure: SnapFailurePolicy = "raise"
    on_point_failure: PointFailurePolicy = "keep-original"

    nearest_url: str = DEFAULT_NEAREST_URL
    nearest_timeout_s: float = Field(default=10.0, gt=0)

    log_level: str = "INFO"

    @field_validator("api_url", "snap_url", "nearest_url")
    @classmethod
    def strip_trailing_slash(cls, value: Optional[str]):
        if value is None:
            return None
        value = value.strip().rstrip("/")
        return value or None

    @field_validator("api_timeout_ms", mode="before")
    @classmethod
    def fallback_api_timeout(cls, value: Any):
        # Anything that is not a finite positive number means "use the default".
        try:
            number = float(value)
        except (TypeError, ValueError):
            return DEFAULT_API_TIMEOUT_MS
        if not math.isfinite(number) or number <= 0:
            return DEFAULT_API_TIMEOUT_MS
        return int(number)

    @property
    def resolved_snap_url(self) -> Optional[str]:
        if self.snap_url:
            return self.snap_url
        if self.api_url:
            return f"{self.api_url}{SNAP_PATH}"
        return None


def _parse_value(value: str) -> Any:
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> Settings:
    environ = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    for name, field in Settings.model_fields.items():
        raw = environ.get(ENV_PREFIX + name.upper())
        if raw is None or raw == "":
            continue
        # Strings stay strings where the field is textual (tokens, urls, enums).
        if field.annotation in (int, float):
            values[name] = _parse_value(raw)
        else:
            values[name] = raw
    values.update(overrides)
    return Settings(**values)

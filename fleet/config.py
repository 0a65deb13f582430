"""Threshold configuration and environment defaults."""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ValidationError

DEFAULT_HORIZON_DAYS = 30
DEFAULT_SERVICE_KM = 500
DEFAULT_TIRE_KM = 1000

DEFAULT_DATA_FILE = "fleet.yaml"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Thresholds:
    """Look-ahead window and distance thresholds for due-soon classification."""

    horizon_days: int = DEFAULT_HORIZON_DAYS
    service_km: float = DEFAULT_SERVICE_KM
    tire_km: float = DEFAULT_TIRE_KM

    def __post_init__(self):
        for name in ("horizon_days", "service_km", "tire_km"):
            if getattr(self, name) < 0:
                raise ValidationError(f"Error: {name} must not be negative")

    @classmethod
    def from_dict(cls, settings: Optional[Dict[str, Any]]) -> "Thresholds":
        """Build thresholds from a `settings:` mapping (camelCase keys)."""
        settings = settings or {}
        return cls(
            horizon_days=int(settings.get("horizonDays", DEFAULT_HORIZON_DAYS)),
            service_km=settings.get("serviceKm", DEFAULT_SERVICE_KM),
            tire_km=settings.get("tireKm", DEFAULT_TIRE_KM),
        )

    def with_overrides(
        self,
        horizon_days: Optional[int] = None,
        service_km: Optional[float] = None,
        tire_km: Optional[float] = None,
    ) -> "Thresholds":
        """Return a copy with any non-None values replaced."""
        changes = {
            k: v
            for k, v in (
                ("horizon_days", horizon_days),
                ("service_km", service_km),
                ("tire_km", tire_km),
            )
            if v is not None
        }
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "horizonDays": self.horizon_days,
            "serviceKm": self.service_km,
            "tireKm": self.tire_km,
        }


def default_data_file() -> Path:
    """Data file path from FLEET_DATA_FILE, falling back to ./fleet.yaml."""
    return Path(os.environ.get("FLEET_DATA_FILE", DEFAULT_DATA_FILE))


def default_log_level() -> str:
    """Log level from FLEET_LOG_LEVEL; unrecognised values fall back to WARNING."""
    level = os.environ.get("FLEET_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    return level if level in LOG_LEVELS else DEFAULT_LOG_LEVEL

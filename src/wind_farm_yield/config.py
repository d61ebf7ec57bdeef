from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from wind_farm_yield.errors import ValidationError


@dataclass(frozen=True)
class WakeConfig:
    # Wake expansion per meter of separation
    decay_constant: float = 0.075
    # Neighbours within this angle of the wind direction count as upstream
    upstream_half_angle_deg: float = 30.0
    # Thrust coefficient behind the fixed per-source deficit factor
    thrust_coefficient: float = 0.4
    hours_per_year: float = 8760.0
    # Keep effective wind speed >= 0 for very dense layouts
    clamp_effective_speed: bool = True


@dataclass(frozen=True)
class ServiceConfig:
    db_path: str = ":memory:"
    cache_dir: Optional[str] = None # None keeps results in process memory

    # Result cache
    cache_ttl_seconds: float = 600.0

    # Recalculation debounce
    debounce_seconds: float = 0.3

    # Snapshot version assignment
    snapshot_max_attempts: int = 5
    snapshot_backoff_seconds: float = 0.05

    def __post_init__(self):
        if self.cache_ttl_seconds <= 0:
            raise ValidationError("cache_ttl_seconds must be positive")
        if self.debounce_seconds < 0:
            raise ValidationError("debounce_seconds must be >= 0")
        if self.snapshot_max_attempts < 1:
            raise ValidationError("snapshot_max_attempts must be >= 1")

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        defaults = cls()
        return cls(
            db_path=os.getenv("WFY_DB_PATH", defaults.db_path),
            cache_dir=os.getenv("WFY_CACHE_DIR") or defaults.cache_dir,
            cache_ttl_seconds=_env_float("WFY_CACHE_TTL", defaults.cache_ttl_seconds),
            debounce_seconds=_env_float("WFY_DEBOUNCE_SECONDS", defaults.debounce_seconds),
        )


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be a number, got {raw!r}") from exc

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Tuple

from wind_farm_yield.errors import ValidationError

# Discretized wind climate for a scenario
# Each bin is a (direction, speed) pair with its share of the year
# Frequencies must sum to 1.0 within FREQUENCY_TOLERANCE

FREQUENCY_TOLERANCE = 0.01


@dataclass(frozen=True)
class WindBin:
    direction: float # Degrees, [0, 360)
    speed: float # Free stream wind speed in m/s
    frequency: float # Share of the year, [0, 1]

    def __post_init__(self):
        if not 0.0 <= self.direction < 360.0:
            raise ValidationError(f"Wind direction must be in [0, 360), got {self.direction}")
        if self.speed < 0.0:
            raise ValidationError(f"Wind speed must be >= 0, got {self.speed}")
        if not 0.0 <= self.frequency <= 1.0:
            raise ValidationError(f"Bin frequency must be in [0, 1], got {self.frequency}")

    def to_dict(self) -> Dict[str, float]:
        return {"direction": self.direction, "speed": self.speed, "frequency": self.frequency}


@dataclass(frozen=True)
class WindRose:
    bins: Tuple[WindBin, ...]

    def __post_init__(self):
        if not self.bins:
            raise ValidationError("WindRose must have at least one bin")
        total = sum(b.frequency for b in self.bins)
        if abs(total - 1.0) > FREQUENCY_TOLERANCE:
            raise ValidationError(f"WindRose frequencies must sum to 1.0 (got {total:.4f})")

    @classmethod
    def from_bins(cls, bins: Iterable[Tuple[float, float, float]]) -> "WindRose":
        return cls(tuple(WindBin(float(d), float(s), float(f)) for d, s, f in bins))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WindRose":
        return cls(tuple(
            WindBin(float(b["direction"]), float(b["speed"]), float(b["frequency"]))
            for b in data.get("bins", [])
        ))

    def to_dict(self) -> Dict[str, Any]:
        return {"bins": [b.to_dict() for b in self.bins]}


# 12-sector rose used when seeding demo scenarios
DEFAULT_WIND_ROSE = WindRose.from_bins([
    (0.0, 8.5, 0.12),
    (30.0, 7.2, 0.08),
    (60.0, 6.5, 0.06),
    (90.0, 7.8, 0.10),
    (120.0, 8.2, 0.11),
    (150.0, 9.1, 0.14),
    (180.0, 8.8, 0.13),
    (210.0, 9.5, 0.15),
    (240.0, 7.5, 0.07),
    (270.0, 6.8, 0.03),
    (300.0, 5.9, 0.01),
    (330.0, 7.0, 0.00),
])

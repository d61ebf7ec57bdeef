from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from wind_farm_yield.errors import ValidationError

# Data class representing the power curve of a wind turbine
# Knots are (wind speed m/s, power kW), strictly increasing in wind speed

@dataclass(frozen=True)
class PowerCurve:
    points: Tuple[Tuple[float, float], ...]

    def __post_init__(self):
        if not self.points:
            raise ValidationError("Power curve must have at least one point")
        speeds = [v for v, _ in self.points]
        for prev, nxt in zip(speeds, speeds[1:]):
            if nxt <= prev:
                raise ValidationError(
                    f"Power curve wind speeds must be strictly increasing (got {prev} then {nxt})"
                )

    @classmethod
    def from_pairs(cls, pairs: Iterable[Sequence[float]]) -> "PowerCurve":
        return cls(tuple((float(v), float(p)) for v, p in pairs))

    @property
    def speeds(self) -> List[float]:
        return [v for v, _ in self.points]

    # Method to calculate power output at a given wind speed

    def power_kw(self, wind_speed_mps: float) -> float:
        v = wind_speed_mps
        first_v, _ = self.points[0]
        last_v, last_p = self.points[-1]

        if v < first_v:
            return 0.0 # Below the first knot nothing is produced
        if v >= last_v:
            return float(last_p) # Clamp to the last knot

        # Index of the knot strictly above v; its predecessor brackets v from below
        i = bisect_right(self.speeds, v)
        v1, p1 = self.points[i - 1]
        v2, p2 = self.points[i]
        t = (v - v1) / (v2 - v1)
        return float(p1 + t * (p2 - p1))

    def to_list(self) -> List[List[float]]:
        return [[v, p] for v, p in self.points]


# Generic 3 MW class curve used when seeding demo layouts
DEFAULT_POWER_CURVE = PowerCurve.from_pairs([
    (0.0, 0.0),
    (3.0, 0.0),
    (5.0, 500.0),
    (8.0, 1500.0),
    (11.0, 2500.0),
    (14.0, 3000.0),
    (25.0, 3000.0),
])

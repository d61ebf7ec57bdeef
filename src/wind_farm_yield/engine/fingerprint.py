from __future__ import annotations

import hashlib
import json
from typing import Sequence

from wind_farm_yield.models.farm_layout import Turbine
from wind_farm_yield.models.wind_rose import WindRose

# Stable digest of everything the yield depends on geometrically
# Turbine ids and power curves are deliberately left out; turbine order is kept


def canonical_layout(turbines: Sequence[Turbine], wind_rose: WindRose) -> str:
    payload = {
        "turbines": [
            {
                "x": float(t.x_m),
                "y": float(t.y_m),
                "h": float(t.hub_height_m),
                "d": float(t.rotor_diameter_m),
            }
            for t in turbines
        ],
        "wind_rose": [
            {"direction": float(b.direction), "speed": float(b.speed), "frequency": float(b.frequency)}
            for b in wind_rose.bins
        ],
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def fingerprint(turbines: Sequence[Turbine], wind_rose: WindRose) -> str:
    return hashlib.sha256(canonical_layout(turbines, wind_rose).encode("utf-8")).hexdigest()


def cache_key(scenario_id: str, digest: str) -> str:
    return f"yield:{scenario_id}:{digest}"

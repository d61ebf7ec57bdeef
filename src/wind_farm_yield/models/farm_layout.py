from __future__ import annotations
from dataclasses import dataclass, field
import math
from typing import Any, Dict, List, Optional

import numpy as np

from wind_farm_yield.errors import ValidationError
from wind_farm_yield.models.turbine_powercurve import DEFAULT_POWER_CURVE, PowerCurve
from wind_farm_yield.models.wind_rose import DEFAULT_WIND_ROSE, WindRose

# Data class representing a wind turbine in a scenario
# Position and geometry are editable, the id is not
@dataclass
class Turbine:
    turbine_id: str # Unique identifier within the scenario
    x_m: float # X coordinate in meters
    y_m: float # Y coordinate in meters
    hub_height_m: float # Hub height in meters
    rotor_diameter_m: float # Rotor diameter in meters
    power_curve: PowerCurve = DEFAULT_POWER_CURVE

    def __post_init__(self):
        if self.hub_height_m <= 0:
            raise ValidationError(f"Turbine {self.turbine_id}: hub height must be positive")
        if self.rotor_diameter_m <= 0:
            raise ValidationError(f"Turbine {self.turbine_id}: rotor diameter must be positive")

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "turbine_id" and "turbine_id" in self.__dict__:
            raise AttributeError("turbine_id is immutable")
        super().__setattr__(name, value)

    @property
    def rotor_radius_m(self) -> float:
        return self.rotor_diameter_m / 2.0

    def distance_to(self, other: "Turbine") -> float:
        return math.hypot(self.x_m - other.x_m, self.y_m - other.y_m)

    # Bearing in degrees from this turbine towards the other, (-180, 180]
    def bearing_to(self, other: "Turbine") -> float:
        return math.degrees(math.atan2(other.y_m - self.y_m, other.x_m - self.x_m))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.turbine_id,
            "x": self.x_m,
            "y": self.y_m,
            "hub_height": self.hub_height_m,
            "rotor_diameter": self.rotor_diameter_m,
            "power_curve": self.power_curve.to_list(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Turbine":
        return cls(
            turbine_id=str(data["id"]),
            x_m=float(data["x"]),
            y_m=float(data["y"]),
            hub_height_m=float(data["hub_height"]),
            rotor_diameter_m=float(data["rotor_diameter"]),
            power_curve=PowerCurve.from_pairs(data["power_curve"]),
        )

# Data class representing a scenario: the unit of computation and versioning
@dataclass
class Scenario:
    scenario_id: str # Unique identifier for the scenario
    name: str # Display name
    wind_rose: WindRose
    turbines: List[Turbine] = field(default_factory=list)

    def __post_init__(self):
        seen = set()
        for t in self.turbines:
            if t.turbine_id in seen:
                raise ValidationError(f"Duplicate turbine id {t.turbine_id!r} in scenario {self.scenario_id!r}")
            seen.add(t.turbine_id)

    def add_turbine(self, turbine: Turbine) -> None:
        if self.get_turbine(turbine.turbine_id) is not None:
            raise ValidationError(f"Duplicate turbine id {turbine.turbine_id!r} in scenario {self.scenario_id!r}")
        self.turbines.append(turbine)

    def remove_turbine(self, turbine_id: str) -> bool:
        for i, t in enumerate(self.turbines):
            if t.turbine_id == turbine_id:
                del self.turbines[i]
                return True
        return False

    def get_turbine(self, turbine_id: str) -> Optional[Turbine]:
        for t in self.turbines:
            if t.turbine_id == turbine_id:
                return t
        return None


# Function to create a rotated, jittered grid layout of turbines
def make_grid_farm(
    scenario_id: str = "default", # Default scenario ID
    name: str = "Grid wind farm", # Display name
    n_rows: int = 3, # Number of rows in the grid
    n_cols: int = 4, # Number of columns in the grid
    spacing_m: float = 800.0, # Spacing between turbines in meters
    rotation_deg: float = 15.0, # Grid rotation about the origin
    jitter_m: float = 0.0, # Max total spread of random position offsets
    hub_height_m: float = 100.0,
    rotor_diameter_m: float = 120.0,
    power_curve: PowerCurve = DEFAULT_POWER_CURVE,
    wind_rose: WindRose = DEFAULT_WIND_ROSE,
    seed: int = 42,
) -> Scenario:
    rng = np.random.default_rng(seed) # Random number generator for reproducibility
    cos_r = math.cos(math.radians(rotation_deg))
    sin_r = math.sin(math.radians(rotation_deg))

    turbines: List[Turbine] = []
# Create turbines in a grid layout
    for r in range(n_rows):
        for c in range(n_cols):
            base_x = c * spacing_m
            base_y = r * spacing_m
            dx, dy = (rng.random(2) - 0.5) * jitter_m
            turbines.append(
                Turbine(
                    turbine_id=f"t{r}_{c}",
                    x_m=float(base_x * cos_r - base_y * sin_r + dx),
                    y_m=float(base_x * sin_r + base_y * cos_r + dy),
                    hub_height_m=hub_height_m,
                    rotor_diameter_m=rotor_diameter_m,
                    power_curve=power_curve,
                )
            )
    return Scenario(scenario_id=scenario_id, name=name, wind_rose=wind_rose, turbines=turbines)

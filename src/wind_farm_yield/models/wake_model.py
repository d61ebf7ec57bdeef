from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Iterable, List

from wind_farm_yield.config import WakeConfig
from wind_farm_yield.models.farm_layout import Turbine

# Top-hat wake model to compute effective wind speed at a turbine
# A neighbour is upstream when the bearing towards it lies within a sector around the wind direction
# Wakes expand linearly with distance; per-source deficits combine as root-sum-square


def signed_angle_diff_deg(angle_deg: float, reference_deg: float) -> float:
    # Result lies in [-180, 180)
    return ((angle_deg - reference_deg + 180.0) % 360.0) - 180.0


@dataclass(frozen=True)
class WakeModel:
    config: WakeConfig = WakeConfig()

    @property
    def source_deficit_factor(self) -> float:
        # Axial induction deficit for the configured thrust coefficient
        return 1.0 - math.sqrt(1.0 - self.config.thrust_coefficient)

    def upstream(self, target: Turbine, turbines: Iterable[Turbine], wind_dir_deg: float) -> List[Turbine]:
        half_angle = self.config.upstream_half_angle_deg
        result = []
        for src in turbines:
            if src.turbine_id == target.turbine_id:
                continue
            diff = signed_angle_diff_deg(target.bearing_to(src), wind_dir_deg)
            if abs(diff) < half_angle:
                result.append(src)
        return result

    def deficit_factor(self, target: Turbine, upstream: Iterable[Turbine]) -> float:
        total = 0.0
        for src in upstream:
            distance = target.distance_to(src)
            wake_radius = src.rotor_radius_m + self.config.decay_constant * distance
            overlap = min(1.0, target.rotor_radius_m / wake_radius)

            deficit = self.source_deficit_factor * (src.rotor_radius_m / wake_radius) ** 2
            total += deficit * deficit * overlap

        factor = math.sqrt(total)
        if self.config.clamp_effective_speed:
            factor = min(factor, 1.0)
        return factor

    # Method to compute effective wind speed at a target turbine considering wakes from other turbines

    def effective_speed(
        self,
        free_speed_mps: float, # Free stream wind speed in meters per second
        wind_dir_deg: float, # Wind direction in degrees
        target: Turbine, # Target turbine for which to compute effective wind speed
        turbines: Iterable[Turbine], # All turbines in the scenario
    ) -> float:
        upstream = self.upstream(target, turbines, wind_dir_deg)
        if not upstream:
            return free_speed_mps
        return free_speed_mps * (1.0 - self.deficit_factor(target, upstream))

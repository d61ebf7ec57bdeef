from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

import pandas as pd

from wind_farm_yield.config import WakeConfig
from wind_farm_yield.logging_config import get_logger
from wind_farm_yield.models.farm_layout import Turbine
from wind_farm_yield.models.wake_model import WakeModel
from wind_farm_yield.models.wind_rose import WindRose

logger = get_logger(__name__)


@dataclass(frozen=True)
class TurbineYield:
    turbine_id: str
    aep_mwh: float
    wake_deficit: float # Frequency-weighted fractional speed loss, 0 = no wake loss


@dataclass(frozen=True)
class YieldResult:
    aep_mwh: float
    turbine_yields: Tuple[TurbineYield, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Always a tuple, whatever sequence is passed in
        object.__setattr__(self, "turbine_yields", tuple(self.turbine_yields))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aep_mwh": self.aep_mwh,
            "turbine_yields": [
                {"turbine_id": ty.turbine_id, "aep_mwh": ty.aep_mwh, "wake_deficit": ty.wake_deficit}
                for ty in self.turbine_yields
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "YieldResult":
        return cls(
            aep_mwh=float(data["aep_mwh"]),
            turbine_yields=tuple(
                TurbineYield(str(ty["turbine_id"]), float(ty["aep_mwh"]), float(ty["wake_deficit"]))
                for ty in data.get("turbine_yields", [])
            ),
        )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [(ty.turbine_id, ty.aep_mwh, ty.wake_deficit) for ty in self.turbine_yields],
            columns=["turbine_id", "aep_mwh", "wake_deficit"],
        )


@dataclass(frozen=True)
class YieldEngine:
    """Annual energy production of a layout under a wind rose.

    Pure and deterministic: the result depends only on the turbines and the
    wind rose passed in, so it is safe to run concurrently for any number of
    scenarios.
    """

    config: WakeConfig = WakeConfig()

    @property
    def wake_model(self) -> WakeModel:
        return WakeModel(self.config)

    def compute(self, turbines: Sequence[Turbine], wind_rose: WindRose) -> YieldResult:
        wake = self.wake_model
        hours_per_year = self.config.hours_per_year

        turbine_yields: List[TurbineYield] = []
        total_aep = 0.0

        for turbine in turbines:
            turbine_aep = 0.0
            wake_deficit = 0.0

            for b in wind_rose.bins:
                effective = wake.effective_speed(b.speed, b.direction, turbine, turbines)
                power_kw = turbine.power_curve.power_kw(effective)

                turbine_aep += (power_kw / 1000.0) * (b.frequency * hours_per_year)
                if b.speed > 0:
                    wake_deficit += (1.0 - effective / b.speed) * b.frequency

            turbine_yields.append(TurbineYield(turbine.turbine_id, turbine_aep, wake_deficit))
            total_aep += turbine_aep

        logger.debug(
            "Computed yield: turbines=%d bins=%d aep=%.2f MWh",
            len(turbines),
            len(wind_rose.bins),
            total_aep,
        )
        return YieldResult(aep_mwh=total_aep, turbine_yields=tuple(turbine_yields))

from __future__ import annotations

import pytest

from wind_farm_yield.config import ServiceConfig
from wind_farm_yield.io.layout_store import LayoutStore
from wind_farm_yield.models.farm_layout import Scenario, Turbine
from wind_farm_yield.models.turbine_powercurve import PowerCurve
from wind_farm_yield.models.wind_rose import WindRose
from wind_farm_yield.versioning.snapshots import SnapshotStore


@pytest.fixture
def power_curve() -> PowerCurve:
    return PowerCurve.from_pairs([(0, 0), (3, 0), (8, 1500), (12, 3000), (25, 3000)])


@pytest.fixture
def single_bin_rose() -> WindRose:
    return WindRose.from_bins([(0.0, 8.0, 1.0)])


@pytest.fixture
def make_turbine(power_curve):
    def _make(turbine_id: str, x: float, y: float, hub_height: float = 100.0, rotor_diameter: float = 120.0) -> Turbine:
        return Turbine(turbine_id, x, y, hub_height, rotor_diameter, power_curve)

    return _make


@pytest.fixture
def scenario(make_turbine, single_bin_rose) -> Scenario:
    return Scenario(
        scenario_id="s1",
        name="Two in a row",
        wind_rose=single_bin_rose,
        turbines=[make_turbine("t1", 0.0, 0.0), make_turbine("t2", 500.0, 0.0)],
    )


@pytest.fixture
def store():
    s = LayoutStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def snapshots(store) -> SnapshotStore:
    return SnapshotStore(store, backoff_seconds=0.01)


@pytest.fixture
def service_config() -> ServiceConfig:
    return ServiceConfig(debounce_seconds=0.15, snapshot_backoff_seconds=0.01)


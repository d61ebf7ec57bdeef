from __future__ import annotations

import pytest

from wind_farm_yield.errors import ValidationError
from wind_farm_yield.models.farm_layout import Scenario, Turbine, make_grid_farm
from wind_farm_yield.models.turbine_powercurve import DEFAULT_POWER_CURVE, PowerCurve
from wind_farm_yield.models.wind_rose import DEFAULT_WIND_ROSE, WindBin, WindRose


def test_power_curve_is_exact_at_knots(power_curve):
    for v, p in power_curve.points:
        assert power_curve.power_kw(v) == p


def test_power_curve_below_first_knot_is_zero():
    curve = PowerCurve.from_pairs([(3, 100), (10, 2000)])
    assert curve.power_kw(2.99) == 0.0
    assert curve.power_kw(0.0) == 0.0


def test_power_curve_clamps_at_and_above_last_knot(power_curve):
    assert power_curve.power_kw(25.0) == 3000.0
    assert power_curve.power_kw(40.0) == 3000.0


def test_power_curve_interpolates_linearly(power_curve):
    assert power_curve.power_kw(10.0) == pytest.approx(2250.0)
    assert power_curve.power_kw(5.5) == pytest.approx(750.0)


def test_single_point_power_curve():
    curve = PowerCurve.from_pairs([(5, 800)])
    assert curve.power_kw(4.0) == 0.0
    assert curve.power_kw(5.0) == 800.0
    assert curve.power_kw(12.0) == 800.0


@pytest.mark.parametrize("pairs", [[], [(3, 0), (3, 100)], [(5, 0), (4, 100)]])
def test_malformed_power_curve_is_rejected(pairs):
    with pytest.raises(ValidationError):
        PowerCurve.from_pairs(pairs)


def test_wind_rose_frequency_tolerance():
    WindRose.from_bins([(0, 8, 0.5), (180, 6, 0.505)])
    with pytest.raises(ValidationError):
        WindRose.from_bins([(0, 8, 0.5), (180, 6, 0.48)])


def test_wind_rose_requires_bins():
    with pytest.raises(ValidationError):
        WindRose(())


@pytest.mark.parametrize("direction,speed,frequency", [(360.0, 8, 1.0), (-1.0, 8, 1.0), (0, -0.1, 1.0), (0, 8, 1.2)])
def test_wind_bin_ranges(direction, speed, frequency):
    with pytest.raises(ValidationError):
        WindBin(direction, speed, frequency)


def test_default_wind_rose_is_valid():
    assert sum(b.frequency for b in DEFAULT_WIND_ROSE.bins) == pytest.approx(1.0)
    assert WindRose.from_dict(DEFAULT_WIND_ROSE.to_dict()) == DEFAULT_WIND_ROSE


def test_turbine_id_is_immutable(make_turbine):
    t = make_turbine("t1", 0, 0)
    t.x_m = 10.0
    assert t.x_m == 10.0
    with pytest.raises(AttributeError):
        t.turbine_id = "t9"


def test_turbine_geometry_is_validated():
    with pytest.raises(ValidationError):
        Turbine("t1", 0, 0, 0.0, 120.0)
    with pytest.raises(ValidationError):
        Turbine("t1", 0, 0, 100.0, -1.0)


def test_bearing_and_distance(make_turbine):
    a = make_turbine("a", 0, 0)
    b = make_turbine("b", 0, 300)
    assert a.distance_to(b) == pytest.approx(300.0)
    assert a.bearing_to(b) == pytest.approx(90.0)
    assert b.bearing_to(a) == pytest.approx(-90.0)


def test_scenario_rejects_duplicate_ids(make_turbine, single_bin_rose):
    scenario = Scenario("s", "S", single_bin_rose, [make_turbine("t1", 0, 0)])
    with pytest.raises(ValidationError):
        scenario.add_turbine(make_turbine("t1", 10, 10))
    assert scenario.remove_turbine("t1") is True
    assert scenario.remove_turbine("t1") is False
    assert scenario.get_turbine("t1") is None


def test_make_grid_farm_is_reproducible():
    a = make_grid_farm(n_rows=2, n_cols=3, jitter_m=50.0, seed=7)
    b = make_grid_farm(n_rows=2, n_cols=3, jitter_m=50.0, seed=7)
    assert [t.turbine_id for t in a.turbines] == ["t0_0", "t0_1", "t0_2", "t1_0", "t1_1", "t1_2"]
    assert [(t.x_m, t.y_m) for t in a.turbines] == [(t.x_m, t.y_m) for t in b.turbines]
    assert all(t.power_curve == DEFAULT_POWER_CURVE for t in a.turbines)


def test_make_grid_farm_rotation():
    farm = make_grid_farm(n_rows=1, n_cols=2, spacing_m=1000.0, rotation_deg=90.0, jitter_m=0.0)
    second = farm.turbines[1]
    assert second.x_m == pytest.approx(0.0, abs=1e-9)
    assert second.y_m == pytest.approx(1000.0)

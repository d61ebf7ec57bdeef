from __future__ import annotations

import pyarrow.dataset as ds
import pytest

from wind_farm_yield.engine.yield_engine import YieldEngine, YieldResult
from wind_farm_yield.io.yield_writer import YieldWriter
from wind_farm_yield.main import main, run_demo
from wind_farm_yield.services.scenario_service import ScenarioService


def test_writer_partitions_by_scenario(tmp_path, make_turbine, single_bin_rose):
    result = YieldEngine().compute([make_turbine("t1", 0, 0), make_turbine("t2", 500, 0)], single_bin_rose)
    YieldWriter(tmp_path).write("s1", "f" * 64, result)

    assert list(tmp_path.glob("scenario_id=s1/date=*/part-*.parquet"))
    df = ds.dataset(str(tmp_path), format="parquet", partitioning="hive").to_table().to_pandas()
    assert sorted(df["turbine_id"]) == ["t1", "t2"]
    assert df["aep_mwh"].sum() == pytest.approx(result.aep_mwh)
    assert set(df["fingerprint"]) == {"f" * 64}


def test_writer_rejects_empty_result(tmp_path):
    with pytest.raises(ValueError):
        YieldWriter(tmp_path).write("s1", "abc", YieldResult(aep_mwh=0.0))


def test_demo_cli_runs_end_to_end(tmp_path, capsys):
    main(["--rows", "2", "--cols", "3", "--parquet-dir", str(tmp_path / "yields")])
    out = capsys.readouterr().out
    assert "6 turbines seeded, snapshot v1" in out
    assert "snapshot v2 diff vs v1" in out
    assert list((tmp_path / "yields").glob("scenario_id=default/date=*/*.parquet"))


class StaleCache:
    """Serves an outdated result once anything has been stored."""

    def __init__(self):
        self.stored = False

    def get(self, key):
        return YieldResult(aep_mwh=1.0) if self.stored else None

    def set(self, key, value, ttl_seconds=600.0):
        self.stored = True


def test_demo_detects_cache_disagreeing_with_engine(store, service_config):
    service = ScenarioService(store, StaleCache(), config=service_config)
    try:
        with pytest.raises(RuntimeError, match="Cached result differs"):
            run_demo(service, "s1", n_rows=1, n_cols=2)
    finally:
        service.close()

from __future__ import annotations

import argparse
from dataclasses import replace
from typing import List, Optional

from wind_farm_yield.config import ServiceConfig
from wind_farm_yield.io.yield_writer import YieldWriter
from wind_farm_yield.logging_config import get_logger
from wind_farm_yield.models.farm_layout import make_grid_farm
from wind_farm_yield.engine.fingerprint import fingerprint
from wind_farm_yield.services.scenario_service import ScenarioService

logger = get_logger(__name__)


def run_demo(
    service: ScenarioService,
    scenario_id: str = "default",
    n_rows: int = 4,
    n_cols: int = 5,
    parquet_dir: Optional[str] = None,
) -> None:
    scenario = make_grid_farm(
        scenario_id=scenario_id,
        name=f"Grid wind farm {n_rows}x{n_cols}",
        n_rows=n_rows,
        n_cols=n_cols,
        spacing_m=800.0,
        rotation_deg=15.0,
        jitter_m=50.0,
    )
    service.create_scenario(scenario)
    v1 = service.save_snapshot(scenario_id)
    print(f"[{scenario_id}] {len(scenario.turbines)} turbines seeded, snapshot v{v1}")

    result = service.compute_yield(scenario_id)
    print(f"[{scenario_id}] AEP {result.aep_mwh:,.1f} MWh")

    again = service.compute_yield(scenario_id)
    stored = service.get_scenario(scenario_id)
    fresh = service.engine.compute(stored.turbines, stored.wind_rose)
    if again.to_dict() != fresh.to_dict():
        raise RuntimeError("Cached result differs from fresh computation")

    moved = scenario.turbines[0]
    service.move_turbine(scenario_id, moved.turbine_id, moved.x_m + 250.0, moved.y_m)
    service.add_turbine(scenario_id, x=-800.0, y=0.0, hub_height_m=100.0, rotor_diameter_m=120.0)
    v2 = service.save_snapshot(scenario_id)

    diff = service.diff_latest(scenario_id)
    print(f"[{scenario_id}] snapshot v{v2} diff vs v{v2 - 1}: {diff.to_dict() if diff else None}")

    updated = service.compute_yield(scenario_id)
    print(f"[{scenario_id}] AEP after edits {updated.aep_mwh:,.1f} MWh")
    print(updated.to_frame().sort_values("wake_deficit", ascending=False).head(5).to_string(index=False))

    for version, created_at in service.list_versions(scenario_id):
        print(f"  v{version}  {created_at.isoformat()}")

    if parquet_dir:
        current = service.get_scenario(scenario_id)
        YieldWriter(parquet_dir).write(scenario_id, fingerprint(current.turbines, current.wind_rose), updated)
        print(f"[{scenario_id}] per-turbine yields written to {parquet_dir}")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="wind-farm-yield",
        description="Seed a grid layout, compute its AEP, edit it and diff the snapshots.",
    )
    parser.add_argument("--scenario", default="default", help="Scenario id to create (default: default)")
    parser.add_argument("--rows", type=int, default=4)
    parser.add_argument("--cols", type=int, default=5)
    parser.add_argument("--db", help="DuckDB file (default: in-memory or $WFY_DB_PATH)")
    parser.add_argument("--parquet-dir", help="Optional directory for a parquet export of per-turbine yields")
    args = parser.parse_args(argv)

    config = ServiceConfig.from_env()
    if args.db:
        config = replace(config, db_path=args.db)

    logger.info("Starting demo scenario=%s db=%s", args.scenario, config.db_path)
    with ScenarioService.from_config(config) as service:
        try:
            run_demo(service, args.scenario, args.rows, args.cols, args.parquet_dir)
        except Exception:
            logger.exception("Demo scenario %s failed", args.scenario)
            raise


if __name__ == "__main__":
    main()

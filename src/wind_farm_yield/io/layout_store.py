from __future__ import annotations

from datetime import datetime, timezone
import json
import threading
from typing import Any, Dict, Iterable, List, Optional, Tuple

import duckdb
import pandas as pd

from wind_farm_yield.errors import SnapshotConflict, ValidationError
from wind_farm_yield.logging_config import get_logger
from wind_farm_yield.models.farm_layout import Scenario, Turbine
from wind_farm_yield.models.turbine_powercurve import PowerCurve
from wind_farm_yield.models.wind_rose import WindRose

logger = get_logger(__name__)

# Relational home for scenarios, live turbines and append-only snapshots
# Snapshot bodies are opaque JSON; (scenario_id, version) is unique

SCHEMA_DDL = [
    """
    CREATE TABLE IF NOT EXISTS scenarios (
        scenario_id VARCHAR PRIMARY KEY,
        name VARCHAR NOT NULL,
        wind_rose VARCHAR NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS turbines (
        scenario_id VARCHAR NOT NULL REFERENCES scenarios (scenario_id),
        turbine_id VARCHAR NOT NULL,
        x DOUBLE NOT NULL,
        y DOUBLE NOT NULL,
        hub_height DOUBLE NOT NULL,
        rotor_diameter DOUBLE NOT NULL,
        power_curve VARCHAR NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS snapshots (
        scenario_id VARCHAR NOT NULL,
        version INTEGER NOT NULL,
        body VARCHAR NOT NULL,
        created_at TIMESTAMP NOT NULL,
        PRIMARY KEY (scenario_id, version)
    )
    """,
]

TURBINE_COLUMNS = "turbine_id, x, y, hub_height, rotor_diameter, power_curve"
SORT_COLUMNS = {"id": "turbine_id", "x": "x", "y": "y"}
SORT_ORDERS = {"asc": "ASC", "desc": "DESC"}


def _turbine_from_row(row: Tuple[Any, ...]) -> Turbine:
    turbine_id, x, y, hub_height, rotor_diameter, power_curve = row
    return Turbine(
        turbine_id=turbine_id,
        x_m=float(x),
        y_m=float(y),
        hub_height_m=float(hub_height),
        rotor_diameter_m=float(rotor_diameter),
        power_curve=PowerCurve.from_pairs(json.loads(power_curve)),
    )


def _turbine_params(scenario_id: str, t: Turbine) -> List[Any]:
    return [
        scenario_id,
        t.turbine_id,
        t.x_m,
        t.y_m,
        t.hub_height_m,
        t.rotor_diameter_m,
        json.dumps(t.power_curve.to_list()),
    ]


class LayoutStore:
    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._con = duckdb.connect(db_path)
        self._lock = threading.Lock()
        for ddl in SCHEMA_DDL:
            self._con.execute(ddl)

    # Each call gets its own cursor; a DuckDB connection must not be shared across threads
    def _cursor(self) -> duckdb.DuckDBPyConnection:
        with self._lock:
            return self._con.cursor()

    def close(self) -> None:
        self._con.close()

    # Scenarios

    def create_scenario(self, scenario: Scenario) -> None:
        with self._cursor() as cur:
            cur.begin()
            try:
                exists = cur.execute(
                    "SELECT 1 FROM scenarios WHERE scenario_id = ?", [scenario.scenario_id]
                ).fetchone()
                if exists:
                    raise ValidationError(f"Scenario {scenario.scenario_id!r} already exists")
                cur.execute(
                    "INSERT INTO scenarios VALUES (?, ?, ?)",
                    [scenario.scenario_id, scenario.name, json.dumps(scenario.wind_rose.to_dict())],
                )
                self._insert_turbines(cur, scenario.scenario_id, scenario.turbines)
                cur.commit()
            except Exception:
                cur.rollback()
                raise
        logger.info("Created scenario %s with %d turbines", scenario.scenario_id, len(scenario.turbines))

    def get_scenario(self, scenario_id: str) -> Optional[Scenario]:
        with self._cursor() as cur:
            row = cur.execute(
                "SELECT name, wind_rose FROM scenarios WHERE scenario_id = ?", [scenario_id]
            ).fetchone()
            if row is None:
                return None
            rows = cur.execute(
                f"SELECT {TURBINE_COLUMNS} FROM turbines WHERE scenario_id = ? ORDER BY turbine_id",
                [scenario_id],
            ).fetchall()
        name, wind_rose = row
        return Scenario(
            scenario_id=scenario_id,
            name=name,
            wind_rose=WindRose.from_dict(json.loads(wind_rose)),
            turbines=[_turbine_from_row(r) for r in rows],
        )

    def scenario_exists(self, scenario_id: str) -> bool:
        with self._cursor() as cur:
            row = cur.execute("SELECT 1 FROM scenarios WHERE scenario_id = ?", [scenario_id]).fetchone()
        return row is not None

    # Live turbines

    def find_turbines(
        self,
        scenario_id: str,
        after: Optional[str] = None,
        limit: int = 100,
        sort_by: str = "id",
        sort_order: str = "asc",
    ) -> List[Turbine]:
        if sort_by not in SORT_COLUMNS:
            raise ValidationError(f"sort_by must be one of {sorted(SORT_COLUMNS)}, got {sort_by!r}")
        if sort_order not in SORT_ORDERS:
            raise ValidationError(f"sort_order must be one of {sorted(SORT_ORDERS)}, got {sort_order!r}")
        if limit < 1:
            raise ValidationError(f"limit must be positive, got {limit}")

        sql = f"SELECT {TURBINE_COLUMNS} FROM turbines WHERE scenario_id = ?"
        params: List[Any] = [scenario_id]
        if after is not None:
            sql += " AND turbine_id > ?"
            params.append(after)
        # turbine_id breaks ties so pages are stable when sorting by coordinate
        sql += f" ORDER BY {SORT_COLUMNS[sort_by]} {SORT_ORDERS[sort_order]}, turbine_id LIMIT ?"
        params.append(int(limit))

        with self._cursor() as cur:
            rows = cur.execute(sql, params).fetchall()
        return [_turbine_from_row(r) for r in rows]

    def get_turbine(self, scenario_id: str, turbine_id: str) -> Optional[Turbine]:
        with self._cursor() as cur:
            row = cur.execute(
                f"SELECT {TURBINE_COLUMNS} FROM turbines WHERE scenario_id = ? AND turbine_id = ?",
                [scenario_id, turbine_id],
            ).fetchone()
        return _turbine_from_row(row) if row else None

    def insert_turbine(self, scenario_id: str, turbine: Turbine) -> None:
        with self._cursor() as cur:
            cur.begin()
            try:
                if self._has_turbine(cur, scenario_id, turbine.turbine_id):
                    raise ValidationError(
                        f"Duplicate turbine id {turbine.turbine_id!r} in scenario {scenario_id!r}"
                    )
                self._insert_turbines(cur, scenario_id, [turbine])
                cur.commit()
            except Exception:
                cur.rollback()
                raise

    def update_turbine(self, scenario_id: str, turbine: Turbine) -> bool:
        with self._cursor() as cur:
            cur.begin()
            try:
                if not self._has_turbine(cur, scenario_id, turbine.turbine_id):
                    cur.rollback()
                    return False
                cur.execute(
                    """
                    UPDATE turbines SET x = ?, y = ?, hub_height = ?, rotor_diameter = ?
                    WHERE scenario_id = ? AND turbine_id = ?
                    """,
                    [
                        turbine.x_m,
                        turbine.y_m,
                        turbine.hub_height_m,
                        turbine.rotor_diameter_m,
                        scenario_id,
                        turbine.turbine_id,
                    ],
                )
                cur.commit()
            except Exception:
                cur.rollback()
                raise
        return True

    def delete_turbine(self, scenario_id: str, turbine_id: str) -> bool:
        with self._cursor() as cur:
            cur.begin()
            try:
                if not self._has_turbine(cur, scenario_id, turbine_id):
                    cur.rollback()
                    return False
                cur.execute(
                    "DELETE FROM turbines WHERE scenario_id = ? AND turbine_id = ?",
                    [scenario_id, turbine_id],
                )
                cur.commit()
            except Exception:
                cur.rollback()
                raise
        return True

    def replace_turbines(self, scenario_id: str, turbines: Iterable[Turbine]) -> None:
        turbines = list(turbines)
        with self._cursor() as cur:
            cur.begin()
            try:
                cur.execute("DELETE FROM turbines WHERE scenario_id = ?", [scenario_id])
                self._insert_turbines(cur, scenario_id, turbines)
                cur.commit()
            except Exception:
                cur.rollback()
                raise

    @staticmethod
    def _has_turbine(cur: duckdb.DuckDBPyConnection, scenario_id: str, turbine_id: str) -> bool:
        row = cur.execute(
            "SELECT 1 FROM turbines WHERE scenario_id = ? AND turbine_id = ?",
            [scenario_id, turbine_id],
        ).fetchone()
        return row is not None

    @staticmethod
    def _insert_turbines(cur: duckdb.DuckDBPyConnection, scenario_id: str, turbines: Iterable[Turbine]) -> None:
        rows = [_turbine_params(scenario_id, t) for t in turbines]
        if rows:
            cur.executemany(f"INSERT INTO turbines (scenario_id, {TURBINE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)", rows)

    # Snapshots

    def insert_snapshot(self, scenario_id: str, version: int, body: Dict[str, Any]) -> datetime:
        created_at = datetime.now(timezone.utc)
        with self._cursor() as cur:
            try:
                cur.execute(
                    "INSERT INTO snapshots VALUES (?, ?, ?, ?)",
                    [scenario_id, version, json.dumps(body, sort_keys=True), created_at.replace(tzinfo=None)],
                )
            except (duckdb.ConstraintException, duckdb.TransactionException) as exc:
                # Unique violation, or a concurrent uncommitted insert of the same key
                raise SnapshotConflict(scenario_id, version) from exc
        return created_at

    def latest_version(self, scenario_id: str) -> int:
        with self._cursor() as cur:
            row = cur.execute(
                "SELECT COALESCE(MAX(version), 0) FROM snapshots WHERE scenario_id = ?", [scenario_id]
            ).fetchone()
        return int(row[0])

    def get_snapshot(self, scenario_id: str, version: int) -> Optional[Dict[str, Any]]:
        with self._cursor() as cur:
            row = cur.execute(
                "SELECT body FROM snapshots WHERE scenario_id = ? AND version = ?", [scenario_id, version]
            ).fetchone()
        return json.loads(row[0]) if row else None

    def list_versions(self, scenario_id: str) -> List[Tuple[int, datetime]]:
        with self._cursor() as cur:
            rows = cur.execute(
                "SELECT version, created_at FROM snapshots WHERE scenario_id = ? ORDER BY version DESC",
                [scenario_id],
            ).fetchall()
        # Stored as naive UTC
        return [(int(v), ts.replace(tzinfo=timezone.utc)) for v, ts in rows]

    def versions_frame(self, scenario_id: str) -> pd.DataFrame:
        with self._cursor() as cur:
            return cur.execute(
                "SELECT version, created_at FROM snapshots WHERE scenario_id = ? ORDER BY version DESC",
                [scenario_id],
            ).df()

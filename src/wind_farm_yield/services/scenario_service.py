from __future__ import annotations

from datetime import datetime
from pathlib import Path
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple

from wind_farm_yield.config import ServiceConfig
from wind_farm_yield.engine.fingerprint import cache_key, fingerprint
from wind_farm_yield.engine.yield_engine import YieldEngine, YieldResult
from wind_farm_yield.errors import ScenarioNotFound, TurbineNotFound
from wind_farm_yield.io.layout_store import LayoutStore
from wind_farm_yield.io.result_cache import JsonFileResultCache, MemoryResultCache, ResultCache
from wind_farm_yield.logging_config import get_logger
from wind_farm_yield.models.farm_layout import Scenario, Turbine
from wind_farm_yield.models.turbine_powercurve import DEFAULT_POWER_CURVE, PowerCurve
from wind_farm_yield.services.scheduler import RecalcScheduler
from wind_farm_yield.versioning.diff import AddedTurbine, LayoutDiff, MovedTurbine, diff_latest
from wind_farm_yield.versioning.snapshots import SnapshotStore, snapshot_body

logger = get_logger(__name__)

# notifier(scenario_id, event, payload); push transport lives outside the core
Notifier = Callable[[str, str, Dict[str, Any]], None]


def _no_op_notifier(scenario_id: str, event: str, payload: Dict[str, Any]) -> None:
    return None


class ScenarioService:
    """Entry point the web layer calls into.

    Owns one debounce scheduler for its lifetime; call ``close()`` (or use
    the service as a context manager) to drain it.
    """

    def __init__(
        self,
        store: LayoutStore,
        cache: ResultCache,
        engine: Optional[YieldEngine] = None,
        config: Optional[ServiceConfig] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.config = config or ServiceConfig()
        self.store = store
        self.cache = cache
        self.engine = engine or YieldEngine()
        self.snapshots = SnapshotStore(
            store,
            max_attempts=self.config.snapshot_max_attempts,
            backoff_seconds=self.config.snapshot_backoff_seconds,
        )
        self.scheduler = RecalcScheduler(self.compute_yield, delay_seconds=self.config.debounce_seconds)
        self._notifier = notifier or _no_op_notifier
        self._owns_store = False

    @classmethod
    def from_config(cls, config: ServiceConfig, notifier: Optional[Notifier] = None) -> "ScenarioService":
        store = LayoutStore(config.db_path)
        cache: ResultCache
        if config.cache_dir:
            cache = JsonFileResultCache(Path(config.cache_dir))
        else:
            cache = MemoryResultCache()
        service = cls(store, cache, config=config, notifier=notifier)
        service._owns_store = True
        return service

    def close(self, run_pending: bool = False) -> None:
        self.scheduler.shutdown(run_pending=run_pending)
        if self._owns_store:
            self.store.close()

    def __enter__(self) -> "ScenarioService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _emit(self, scenario_id: str, event: str, payload: Dict[str, Any]) -> None:
        try:
            self._notifier(scenario_id, event, payload)
        except Exception:
            logger.exception("Notifier failed for %s event on scenario %s", event, scenario_id)

    def _load(self, scenario_id: str) -> Scenario:
        scenario = self.store.get_scenario(scenario_id)
        if scenario is None:
            raise ScenarioNotFound(scenario_id)
        return scenario

    def _require_scenario(self, scenario_id: str) -> None:
        if not self.store.scenario_exists(scenario_id):
            raise ScenarioNotFound(scenario_id)

    # Scenarios

    def create_scenario(self, scenario: Scenario) -> None:
        self.store.create_scenario(scenario)

    def get_scenario(self, scenario_id: str) -> Scenario:
        return self._load(scenario_id)

    def find_turbines(self, scenario_id: str, **options: Any) -> List[Turbine]:
        return self.store.find_turbines(scenario_id, **options)

    # Yield

    def compute_yield(self, scenario_id: str) -> YieldResult:
        self._emit(scenario_id, "calc_status", {"status": "queued"})
        scenario = self._load(scenario_id)

        digest = fingerprint(scenario.turbines, scenario.wind_rose)
        key = cache_key(scenario_id, digest)

        result = self.cache.get(key)
        if result is None:
            logger.info("Cache miss for scenario %s (%s), computing", scenario_id, digest[:12])
            self._emit(scenario_id, "calc_status", {"status": "running"})
            result = self.engine.compute(scenario.turbines, scenario.wind_rose)
            self.cache.set(key, result, self.config.cache_ttl_seconds)
            logger.info(
                "Computed scenario %s: %d turbines, AEP %.1f MWh",
                scenario_id,
                len(scenario.turbines),
                result.aep_mwh,
            )
        else:
            logger.info("Cache hit for scenario %s (%s)", scenario_id, digest[:12])

        self._emit(scenario_id, "calc_status", {"status": "done", "aep_mwh": result.aep_mwh})
        return result

    def latest_result(self, scenario_id: str) -> Optional[YieldResult]:
        scenario = self.store.get_scenario(scenario_id)
        if scenario is None:
            return None
        return self.cache.get(cache_key(scenario_id, fingerprint(scenario.turbines, scenario.wind_rose)))

    def notify_layout_changed(self, scenario_id: str) -> None:
        self.scheduler.signal(scenario_id)

    # Live layout edits

    def _layout_changed(self, scenario_id: str, change: LayoutDiff) -> LayoutDiff:
        self._emit(scenario_id, "layout_changed", change.to_dict())
        self.notify_layout_changed(scenario_id)
        return change

    def move_turbine(self, scenario_id: str, turbine_id: str, x: float, y: float) -> LayoutDiff:
        self._require_scenario(scenario_id)
        turbine = self.store.get_turbine(scenario_id, turbine_id)
        if turbine is None:
            raise TurbineNotFound(scenario_id, turbine_id)

        old_pos = (turbine.x_m, turbine.y_m)
        turbine.x_m = float(x)
        turbine.y_m = float(y)
        if not self.store.update_turbine(scenario_id, turbine):
            raise TurbineNotFound(scenario_id, turbine_id)

        change = LayoutDiff(moved=[MovedTurbine(turbine_id, old_pos, (turbine.x_m, turbine.y_m))])
        return self._layout_changed(scenario_id, change)

    def add_turbine(
        self,
        scenario_id: str,
        x: float,
        y: float,
        hub_height_m: float,
        rotor_diameter_m: float,
        power_curve: Optional[PowerCurve] = None,
    ) -> Turbine:
        self._require_scenario(scenario_id)
        if power_curve is None:
            # New turbines inherit the scenario's model unless told otherwise
            first = self.store.find_turbines(scenario_id, limit=1)
            power_curve = first[0].power_curve if first else DEFAULT_POWER_CURVE

        turbine = Turbine(
            turbine_id=f"t{uuid.uuid4().hex[:12]}",
            x_m=float(x),
            y_m=float(y),
            hub_height_m=float(hub_height_m),
            rotor_diameter_m=float(rotor_diameter_m),
            power_curve=power_curve,
        )
        self.store.insert_turbine(scenario_id, turbine)

        self._layout_changed(scenario_id, LayoutDiff(added=[AddedTurbine(turbine.turbine_id, turbine.x_m, turbine.y_m)]))
        return turbine

    def delete_turbine(self, scenario_id: str, turbine_id: str) -> LayoutDiff:
        self._require_scenario(scenario_id)
        if not self.store.delete_turbine(scenario_id, turbine_id):
            raise TurbineNotFound(scenario_id, turbine_id)
        return self._layout_changed(scenario_id, LayoutDiff(removed=[turbine_id]))

    # Versioning

    def save_snapshot(self, scenario_id: str) -> int:
        scenario = self._load(scenario_id)
        return self.snapshots.save_snapshot_atomic(scenario_id, snapshot_body(scenario.turbines))

    def restore_snapshot(self, scenario_id: str, version: int) -> int:
        self._require_scenario(scenario_id)
        self.snapshots.restore(scenario_id, version)
        self._emit(scenario_id, "layout_restored", {"version": version})
        self.notify_layout_changed(scenario_id)
        return version

    def list_versions(self, scenario_id: str) -> List[Tuple[int, datetime]]:
        return self.snapshots.list_versions(scenario_id)

    def diff_latest(self, scenario_id: str) -> Optional[LayoutDiff]:
        return diff_latest(self.snapshots, scenario_id)

from __future__ import annotations

from datetime import datetime
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from wind_farm_yield.errors import SnapshotConflict, SnapshotContentionError, VersionNotFound
from wind_farm_yield.io.layout_store import LayoutStore
from wind_farm_yield.logging_config import get_logger
from wind_farm_yield.models.farm_layout import Turbine

logger = get_logger(__name__)


def snapshot_body(turbines: Sequence[Turbine]) -> Dict[str, Any]:
    return {"turbines": [t.to_dict() for t in turbines]}


def turbines_from_body(body: Dict[str, Any]) -> List[Turbine]:
    return [Turbine.from_dict(t) for t in body.get("turbines", [])]


@dataclass
class SnapshotStore:
    """Append-only, per-scenario versioned layout snapshots.

    Versions start at 1 and increase by one per save. Writers never lock:
    each attempt reads the current maximum and inserts at max+1, relying on
    the store's (scenario_id, version) uniqueness to reject the loser of a
    race, which then backs off linearly and tries again.
    """

    store: LayoutStore
    max_attempts: int = 5
    backoff_seconds: float = 0.05
    sleep: Callable[[float], None] = time.sleep

    def save_snapshot_atomic(self, scenario_id: str, body: Dict[str, Any]) -> int:
        for attempt in range(1, self.max_attempts + 1):
            version = self.store.latest_version(scenario_id) + 1
            try:
                self.store.insert_snapshot(scenario_id, version, body)
            except SnapshotConflict:
                if attempt == self.max_attempts:
                    break
                delay = self.backoff_seconds * attempt
                logger.warning(
                    "Snapshot version %d for scenario %s taken, retrying in %.0f ms (attempt %d/%d)",
                    version,
                    scenario_id,
                    delay * 1000,
                    attempt,
                    self.max_attempts,
                )
                self.sleep(delay)
                continue
            logger.info("Saved snapshot version %d for scenario %s", version, scenario_id)
            return version

        raise SnapshotContentionError(
            f"Failed to save snapshot for scenario {scenario_id!r} after {self.max_attempts} attempts"
        )

    def get_snapshot(self, scenario_id: str, version: int) -> Optional[Dict[str, Any]]:
        return self.store.get_snapshot(scenario_id, version)

    def latest_version(self, scenario_id: str) -> int:
        return self.store.latest_version(scenario_id)

    def list_versions(self, scenario_id: str) -> List[Tuple[int, datetime]]:
        return self.store.list_versions(scenario_id)

    def restore(self, scenario_id: str, version: int) -> List[Turbine]:
        # Replaces the live layout; does not record a new version
        body = self.store.get_snapshot(scenario_id, version)
        if body is None:
            raise VersionNotFound(scenario_id, version)
        turbines = turbines_from_body(body)
        self.store.replace_turbines(scenario_id, turbines)
        logger.info("Restored scenario %s to version %d (%d turbines)", scenario_id, version, len(turbines))
        return turbines

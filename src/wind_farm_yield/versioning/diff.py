from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from wind_farm_yield.versioning.snapshots import SnapshotStore

Position = Tuple[float, float]


@dataclass(frozen=True)
class AddedTurbine:
    turbine_id: str
    x: float
    y: float


@dataclass(frozen=True)
class MovedTurbine:
    turbine_id: str
    from_pos: Position
    to_pos: Position


@dataclass
class LayoutDiff:
    added: List[AddedTurbine] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    moved: List[MovedTurbine] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.moved)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added": [{"id": a.turbine_id, "x": a.x, "y": a.y} for a in self.added],
            "removed": list(self.removed),
            "moved": [
                {
                    "id": m.turbine_id,
                    "from": {"x": m.from_pos[0], "y": m.from_pos[1]},
                    "to": {"x": m.to_pos[0], "y": m.to_pos[1]},
                }
                for m in self.moved
            ],
        }


def _positions(body: Dict[str, Any]) -> Dict[str, Position]:
    return {str(t["id"]): (float(t["x"]), float(t["y"])) for t in body.get("turbines", [])}


def diff_snapshots(older: Dict[str, Any], newer: Dict[str, Any]) -> LayoutDiff:
    prev = _positions(older)
    curr = _positions(newer)

    diff = LayoutDiff()
    for turbine_id, pos in curr.items():
        old_pos = prev.get(turbine_id)
        if old_pos is None:
            diff.added.append(AddedTurbine(turbine_id, pos[0], pos[1]))
        elif old_pos != pos:
            diff.moved.append(MovedTurbine(turbine_id, old_pos, pos))
    diff.removed.extend(turbine_id for turbine_id in prev if turbine_id not in curr)
    return diff


def diff_latest(snapshots: SnapshotStore, scenario_id: str) -> Optional[LayoutDiff]:
    """Diff between the two most recent snapshots, or None with fewer than two."""
    latest = snapshots.latest_version(scenario_id)
    if latest < 2:
        return None

    newer = snapshots.get_snapshot(scenario_id, latest)
    older = snapshots.get_snapshot(scenario_id, latest - 1)
    if newer is None or older is None:
        return None
    return diff_snapshots(older, newer)

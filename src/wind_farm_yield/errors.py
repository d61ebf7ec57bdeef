from __future__ import annotations


class WindFarmYieldError(Exception):
    """Base class for every error raised by the yield core."""


class ValidationError(WindFarmYieldError, ValueError):
    """Malformed input rejected at construction time."""


class NotFoundError(WindFarmYieldError, LookupError):
    pass


class ScenarioNotFound(NotFoundError):
    def __init__(self, scenario_id: str):
        super().__init__(f"Scenario {scenario_id!r} not found")
        self.scenario_id = scenario_id


class TurbineNotFound(NotFoundError):
    def __init__(self, scenario_id: str, turbine_id: str):
        super().__init__(f"Turbine {turbine_id!r} not found in scenario {scenario_id!r}")
        self.scenario_id = scenario_id
        self.turbine_id = turbine_id


class VersionNotFound(NotFoundError):
    def __init__(self, scenario_id: str, version: int):
        super().__init__(f"Version {version} not found for scenario {scenario_id!r}")
        self.scenario_id = scenario_id
        self.version = version


class SnapshotConflict(WindFarmYieldError):
    """Another writer already holds (scenario_id, version)."""

    def __init__(self, scenario_id: str, version: int):
        super().__init__(f"Snapshot version {version} already exists for scenario {scenario_id!r}")
        self.scenario_id = scenario_id
        self.version = version


class SnapshotContentionError(WindFarmYieldError, RuntimeError):
    pass

from __future__ import annotations

import hashlib
import json
import threading
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol, Tuple

from wind_farm_yield.engine.yield_engine import YieldResult
from wind_farm_yield.logging_config import get_logger

logger = get_logger(__name__)

# Key -> YieldResult stores with TTL expiry
# Entries are never invalidated explicitly; a changed layout yields a changed key

DEFAULT_TTL_SECONDS = 600.0


class ResultCache(Protocol):
    def get(self, key: str) -> Optional[YieldResult]: ...

    def set(self, key: str, value: YieldResult, ttl_seconds: float = DEFAULT_TTL_SECONDS) -> None: ...


@dataclass
class MemoryResultCache:
    clock: Callable[[], float] = time.monotonic
    _entries: Dict[str, Tuple[float, YieldResult]] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def get(self, key: str) -> Optional[YieldResult]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self.clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: YieldResult, ttl_seconds: float = DEFAULT_TTL_SECONDS) -> None:
        with self._lock:
            self._entries[key] = (self.clock() + ttl_seconds, value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Cache results as JSON files so they survive process restarts
# One file per key: {"expires_at": <epoch seconds>, "value": {...}}

@dataclass
class JsonFileResultCache:
    base_path: Path = Path("data_lake/_cache") # Base directory for cache files
    clock: Callable[[], float] = time.time

    def _path(self, key: str) -> Path:
        self.base_path.mkdir(parents=True, exist_ok=True)
        # Keys contain ':' which is not portable in file names
        name = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.base_path / f"{name}.json"

    def get(self, key: str) -> Optional[YieldResult]:
        p = self._path(key)
        try:
            with p.open("r") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError:
            # Unreadable entry counts as a miss; the next set rewrites it
            logger.warning("Discarding unreadable cache file %s for key %s", p.name, key)
            p.unlink(missing_ok=True)
            return None
        if self.clock() >= data.get("expires_at", 0.0):
            p.unlink(missing_ok=True)
            return None
        return YieldResult.from_dict(data["value"])

    def set(self, key: str, value: YieldResult, ttl_seconds: float = DEFAULT_TTL_SECONDS) -> None:
        p = self._path(key)
        tmp = p.with_suffix(f".{uuid.uuid4().hex}.tmp")
        with tmp.open("w") as f:
            json.dump({"key": key, "expires_at": self.clock() + ttl_seconds, "value": value.to_dict()}, f)
        # Atomic replace so concurrent readers never see a partial file
        tmp.replace(p)

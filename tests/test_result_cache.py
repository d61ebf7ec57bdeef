from __future__ import annotations

from wind_farm_yield.engine.yield_engine import TurbineYield, YieldResult
from wind_farm_yield.io.result_cache import JsonFileResultCache, MemoryResultCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _result() -> YieldResult:
    return YieldResult(
        aep_mwh=26280.0,
        turbine_yields=[TurbineYield("t1", 13140.0, 0.0), TurbineYield("t2", 13140.0, 0.0)],
    )


def test_memory_cache_expires_after_ttl():
    clock = FakeClock()
    cache = MemoryResultCache(clock=clock)
    cache.set("yield:s1:abc", _result(), ttl_seconds=600)

    clock.now += 599
    assert cache.get("yield:s1:abc") == _result()
    clock.now += 1
    assert cache.get("yield:s1:abc") is None
    assert len(cache) == 0


def test_memory_cache_miss():
    assert MemoryResultCache().get("yield:s1:missing") is None


def test_file_cache_survives_new_instance(tmp_path):
    clock = FakeClock()
    JsonFileResultCache(tmp_path, clock=clock).set("yield:s1:abc", _result(), ttl_seconds=60)

    reopened = JsonFileResultCache(tmp_path, clock=clock)
    assert reopened.get("yield:s1:abc") == _result()
    assert reopened.get("yield:s2:abc") is None


def test_file_cache_expiry_removes_entry(tmp_path):
    clock = FakeClock()
    cache = JsonFileResultCache(tmp_path, clock=clock)
    cache.set("yield:s1:abc", _result(), ttl_seconds=60)

    clock.now += 60
    assert cache.get("yield:s1:abc") is None
    assert list(tmp_path.glob("*.json")) == []


def test_file_cache_treats_corrupt_file_as_miss(tmp_path):
    clock = FakeClock()
    cache = JsonFileResultCache(tmp_path, clock=clock)
    cache.set("yield:s1:abc", _result(), ttl_seconds=60)
    (entry,) = tmp_path.glob("*.json")
    entry.write_text('{"expires_at": 10')

    assert cache.get("yield:s1:abc") is None
    assert not entry.exists()

    cache.set("yield:s1:abc", _result(), ttl_seconds=60)
    assert cache.get("yield:s1:abc") == _result()


def test_file_cache_writes_leave_no_temp_files(tmp_path):
    cache = JsonFileResultCache(tmp_path)
    for _ in range(3):
        cache.set("yield:s1:abc", _result())
    assert list(tmp_path.glob("*.tmp")) == []
    assert len(list(tmp_path.glob("*.json"))) == 1


def test_result_rows_are_immutable():
    result = YieldResult(aep_mwh=1.0, turbine_yields=[TurbineYield("t1", 1.0, 0.0)])
    assert isinstance(result.turbine_yields, tuple)
    assert result == YieldResult.from_dict(result.to_dict())

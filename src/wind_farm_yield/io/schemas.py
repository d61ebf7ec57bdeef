from __future__ import annotations
import pyarrow as pa

# Define the schema for per-turbine yield exports
# One row per turbine per computed layout fingerprint

def turbine_yield_arrow_schema() -> pa.Schema:
    return pa.schema([
        # identity
        ("scenario_id", pa.string()),
        ("fingerprint", pa.string()),
        ("turbine_id", pa.string()),

        # yield
        ("aep_mwh", pa.float64()),
        ("wake_deficit", pa.float64()),

        # export metadata
        ("computed_time", pa.timestamp("ms", tz="UTC")),
    ])

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import uuid
import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from wind_farm_yield.engine.yield_engine import YieldResult
from wind_farm_yield.io.schemas import turbine_yield_arrow_schema
from wind_farm_yield.logging_config import get_logger

logger = get_logger(__name__)


class YieldWriter:
    def __init__(self, base_path: Path | str = "data_lake/yields"):
        self.base_path = Path(base_path)

    def write(self, scenario_id: str, fingerprint: str, result: YieldResult) -> Path:
        df = result.to_frame()
        if df.empty:
            raise ValueError("YieldWriter received a result without turbines")

        computed_time = pd.Timestamp(datetime.now(timezone.utc)).floor("ms")
        df["scenario_id"] = scenario_id
        df["fingerprint"] = fingerprint
        df["computed_time"] = computed_time
        df["date"] = computed_time.strftime("%Y-%m-%d")

        schema = turbine_yield_arrow_schema()
        table = pa.Table.from_pandas(df[schema.names], schema=schema, preserve_index=False, safe=False)

        # Append partition col (not in schema contract)
        table = table.append_column("date", pa.array(df["date"], type=pa.string()))

        self.base_path.mkdir(parents=True, exist_ok=True)

        # Unique filename per write = no accidental overwrites
        unique_name = f"part-{uuid.uuid4().hex}"

        pq.write_to_dataset(
            table=table,
            root_path=str(self.base_path),
            partition_cols=["scenario_id", "date"],
            basename_template=unique_name + "-{i}.parquet",
            existing_data_behavior="overwrite_or_ignore",
        )
        logger.info(
            "Wrote %d turbine yields for scenario %s (%s) to %s",
            len(df),
            scenario_id,
            fingerprint[:12],
            self.base_path,
        )
        return self.base_path

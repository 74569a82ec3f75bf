"""
Sensor readings workload.

Time-series rows `(client_id, sensor_id, ts, value)` keyed on all but the
value, written into a single CrateDB table tuned for ingest.
"""

from __future__ import annotations

import random
from datetime import UTC, datetime
from typing import Optional

from insertbench.core.workloads.base import Workload, quoted

CLIENT_IDS = list(range(21))
SENSOR_IDS = [f"sensor_{i}" for i in range(1000)]
MAX_VALUE = 1_000_000.0


class SensorsWorkload(Workload):
    """Random sensor readings for `doc.sensors`."""

    def __init__(
        self,
        batch_size: int,
        *,
        shards: int = 1,
        table: str = "doc.sensors",
        rng: Optional[random.Random] = None,
    ):
        super().__init__(batch_size)
        if int(shards) <= 0:
            raise ValueError(f"shards must be positive, got {shards}")
        self.shards = int(shards)
        self._table = table
        self._rng = rng or random.Random()

    def table_name(self) -> str:
        return self._table

    def insert_prefix(self) -> str:
        return f"INSERT INTO {self._table}(client_id, sensor_id, ts, value) VALUES"

    def create_statement(self) -> str:
        return (
            f"CREATE TABLE {self._table} ("
            "    client_id INTEGER,"
            "    sensor_id TEXT,"
            "    ts TIMESTAMPTZ,"
            "    value DOUBLE PRECISION INDEX OFF,"
            "    PRIMARY KEY (client_id, sensor_id, ts)"
            ")"
            f" CLUSTERED INTO {self.shards} SHARDS"
            " WITH ("
            "    number_of_replicas = 0,"
            "    \"translog.durability\" = 'ASYNC',"
            "    \"translog.sync_interval\" = 5000,"
            "    refresh_interval = 10000,"
            "    \"store.type\" = 'hybridfs'"
            ")"
        )

    def row_values(self) -> str:
        rng = self._rng
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return (
            f"({rng.choice(CLIENT_IDS)},"
            f"{quoted(rng.choice(SENSOR_IDS))},"
            f"{quoted(ts)},"
            f"{rng.uniform(0.0, MAX_VALUE)!r})"
        )

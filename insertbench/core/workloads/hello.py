"""
Aggregate rows workload.

Narrow numeric rows `(id, avg_value, total_value)` with a monotonically
increasing id, written into a widely sharded table.
"""

from __future__ import annotations

import itertools
import random
from typing import Iterator, Optional

from insertbench.core.workloads.base import Workload

# Process-wide id sequence; every HelloWorkload draws from it unless given
# its own, so ids never repeat within one process.
_IDS: Iterator[int] = itertools.count()


class HelloWorkload(Workload):
    """Sequential-id numeric rows for `doc.hello`."""

    def __init__(
        self,
        batch_size: int,
        *,
        shards: int = 30,
        table: str = "doc.hello",
        ids: Optional[Iterator[int]] = None,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(batch_size)
        if int(shards) <= 0:
            raise ValueError(f"shards must be positive, got {shards}")
        self.shards = int(shards)
        self._table = table
        self._ids = ids if ids is not None else _IDS
        self._last_id = -1
        self._rng = rng or random.Random()

    def table_name(self) -> str:
        return self._table

    def insert_prefix(self) -> str:
        return f"INSERT INTO {self._table}(id, avg_value, total_value) VALUES"

    def create_statement(self) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {self._table} ("
            "    id INTEGER,"
            "    avg_value DOUBLE PRECISION,"
            "    total_value BIGINT"
            ")"
            f" CLUSTERED INTO {self.shards} SHARDS"
            " WITH ("
            "    \"allocation.max_retries\" = 10,"
            "    column_policy = 'dynamic',"
            "    number_of_replicas = '0-2',"
            "    refresh_interval = 1000,"
            "    \"translog.durability\" = 'REQUEST',"
            "    \"translog.sync_interval\" = 5000,"
            "    \"write.wait_for_active_shards\" = '1'"
            ")"
        )

    def _row(self, row_id: int) -> str:
        rng = self._rng
        return (
            f"({row_id},"
            f"{rng.uniform(0.0, 1_000_000.0)!r},"
            f"{rng.randrange(1_000_000)})"
        )

    def row_values(self) -> str:
        self._last_id = next(self._ids)
        return self._row(self._last_id)

    def sample_batch(self) -> str:
        # Ids after the last one drawn, without advancing the sequence.
        start = self._last_id + 1
        values = ", ".join(self._row(start + i) for i in range(self.batch_size))
        return f"{self.insert_prefix()}{values}"

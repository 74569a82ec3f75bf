"""
Run Result Models

Defines the derived, read-only outputs of a timed insert run.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class RunPhase(str, Enum):
    """Linear lifecycle of a run. There are no back-edges."""

    INIT = "init"
    PREPARE_SCHEMA = "prepare_schema"
    BASELINE_COUNT = "baseline_count"
    RUNNING = "running"
    DRAINING = "draining"
    FINAL_COUNT = "final_count"
    REPORT = "report"
    CLOSED = "closed"


def compute_inserts_per_second(inserted_rows: int, elapsed_millis: int) -> float:
    """Throughput rounded to two decimals; elapsed is clamped to >= 1ms."""
    elapsed = max(1, int(elapsed_millis))
    return round((inserted_rows * 100_000.0) / elapsed) / 100.0


class RunResult(BaseModel):
    """Before/after counts and elapsed wall time of one run."""

    model_config = ConfigDict(frozen=True)

    pre_count: int = Field(..., description="Row count before the run")
    post_count: int = Field(..., description="Row count after the run")
    elapsed_millis: int = Field(..., description="Elapsed wall time (ms), >= 1")

    @field_validator("elapsed_millis", mode="before")
    @classmethod
    def _at_least_one_milli(cls, v) -> int:
        # A sub-millisecond run still reports 1ms so throughput is defined.
        return max(1, int(v))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def inserted_rows(self) -> int:
        return self.post_count - self.pre_count

    @computed_field  # type: ignore[prop-decorator]
    @property
    def inserts_per_second(self) -> float:
        return compute_inserts_per_second(self.inserted_rows, self.elapsed_millis)


class WorkerStats(BaseModel):
    """What one insert worker did during the run."""

    worker_id: int = Field(..., description="Worker index")
    endpoint: Optional[str] = Field(None, description="Endpoint the worker connected to")
    batches: int = Field(0, description="Batches executed")
    committed: bool = Field(False, description="Final commit succeeded")
    error: Optional[str] = Field(None, description="Failure message, if any")


class RunReport(BaseModel):
    """
    Structured record emitted at the end of a successful run.
    """

    model_config = ConfigDict(frozen=True)

    table: str = Field(..., description="Target table")
    endpoint: str = Field(..., description="Endpoint pool the run targeted")
    insert_prefix: str = Field(..., description="INSERT ... VALUES prefix")
    batch_size: int = Field(..., description="Values per insert")
    worker_count: int = Field(..., description="Concurrent workers")
    approx_batch_bytes: int = Field(0, description="Approximate statement size")
    pre_count: int = Field(..., description="Pre run count")
    post_count: int = Field(..., description="Post run count")
    elapsed_millis: int = Field(..., description="Elapsed (ms)")
    inserted_rows: int = Field(..., description="post_count - pre_count")
    inserts_per_second: float = Field(..., description="Inserted rows per second")
    failed_workers: int = Field(0, description="Workers that failed (tolerate policy)")

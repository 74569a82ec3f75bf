"""
Error taxonomy for insert stress runs.

Every fatal condition of a run is an `InsertBenchError`. There is no partial
success: a run either produces a `RunReport` or raises one of these.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence


class InsertBenchError(Exception):
    """Base class for all run-level failures."""


class RunConfigurationError(InsertBenchError):
    """Invalid configuration (bad endpoint string, unknown workload, ...)."""


class EndpointUnreachable(InsertBenchError):
    """Every endpoint in the pool refused a connection during one acquisition."""

    def __init__(self, attempts: Sequence[Any]):
        self.attempts = list(attempts)
        tried = ", ".join(str(a.endpoint) for a in self.attempts) or "<none>"
        super().__init__(f"Database is unreachable (tried: {tried})")


class SchemaPreparationFailed(InsertBenchError):
    """Drop/create of the target table failed; no workers were started."""

    def __init__(self, table: str, reason: str):
        self.table = table
        super().__init__(f"Failed to prepare table {table}: {reason}")


class WorkerExecutionFailed(InsertBenchError):
    """A worker could not connect, execute a batch, or commit."""

    def __init__(
        self,
        worker_id: int,
        reason: str,
        *,
        endpoint: Optional[str] = None,
        batches_executed: int = 0,
    ):
        self.worker_id = worker_id
        self.endpoint = endpoint
        self.batches_executed = batches_executed
        where = f" on {endpoint}" if endpoint else ""
        super().__init__(
            f"Insert worker {worker_id} failed{where} after "
            f"{batches_executed} batches: {reason}"
        )


class BaselineOrFinalCountUnavailable(InsertBenchError):
    """The refresh or count query failed, or returned no row."""

    def __init__(self, table: str, reason: Optional[str] = None):
        self.table = table
        super().__init__(f"count(*) on {table} failed: {reason or 'returned no row'}")

"""
Data models for insert stress runs.
"""

from insertbench.models.endpoint import DEFAULT_PORT, Endpoint, EndpointPool
from insertbench.models.run_config import Credentials, RunConfig, WorkerFailurePolicy
from insertbench.models.run_result import (
    RunPhase,
    RunReport,
    RunResult,
    WorkerStats,
    compute_inserts_per_second,
)

__all__ = [
    "DEFAULT_PORT",
    "Endpoint",
    "EndpointPool",
    "Credentials",
    "RunConfig",
    "WorkerFailurePolicy",
    "RunPhase",
    "RunReport",
    "RunResult",
    "WorkerStats",
    "compute_inserts_per_second",
]

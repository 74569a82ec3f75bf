"""
Run Configuration Models

Defines Pydantic models for a single timed insert run:
- Store credentials
- Worker failure policy
- Run configuration (endpoints, workers, batch size, duration, flags)
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from insertbench.models.endpoint import Endpoint, EndpointPool


class WorkerFailurePolicy(str, Enum):
    """What a worker failure does to the run."""

    # Surface the first worker failure as a fatal run error.
    FAIL = "fail"
    # Log it, keep the surviving workers going, report on what they committed.
    TOLERATE = "tolerate"


class Credentials(BaseModel):
    """Credentials for the store session."""

    model_config = ConfigDict(frozen=True)

    user: str = Field("crate", description="Username for authentication")
    password: str = Field("", description="Password for authentication")
    database: Optional[str] = Field(None, description="Database to connect to")

    def __repr__(self) -> str:
        # Never leak the password into logs.
        masked = "********" if self.password else ""
        return (
            f"Credentials(user={self.user!r}, password={masked!r}, "
            f"database={self.database!r})"
        )


class RunConfig(BaseModel):
    """
    Configuration of one timed insert run.

    Immutable once built; the orchestrator reads it, nobody writes it.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    endpoints: List[Endpoint] = Field(..., min_length=1, description="Candidate endpoints")
    credentials: Credentials = Field(default_factory=Credentials)
    worker_count: int = Field(..., gt=0, description="Concurrent insert workers")
    batch_size: int = Field(..., gt=0, description="Rows per INSERT statement")
    run_duration_millis: int = Field(..., gt=0, description="Time budget (ms)")
    clean_table_before_run: bool = Field(
        False, description="Drop and recreate the target table first"
    )
    round_robin: bool = Field(
        False, description="Spread acquisitions across endpoints"
    )
    failure_policy: WorkerFailurePolicy = Field(
        WorkerFailurePolicy.FAIL, description="Effect of a worker failure"
    )
    connect_timeout_seconds: float = Field(
        10.0, gt=0, description="Per-endpoint connect timeout"
    )

    @field_validator("endpoints", mode="before")
    @classmethod
    def _parse_endpoints(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = [part for part in v.split(",") if part.strip()]
        if isinstance(v, (list, tuple)):
            return [Endpoint.parse(e) if isinstance(e, str) else e for e in v]
        return v

    @property
    def run_duration_seconds(self) -> float:
        return self.run_duration_millis / 1000.0

    def endpoint_pool(self) -> EndpointPool:
        return EndpointPool(self.endpoints)

    @classmethod
    def from_settings(cls, settings: Any, **overrides: Any) -> "RunConfig":
        """
        Build a run configuration from `Settings` defaults.

        Keyword overrides win over settings; `None` overrides are ignored so
        CLI flags that were not given fall back to the environment.
        """
        values: dict[str, Any] = {
            "endpoints": settings.store_endpoints,
            "credentials": Credentials(
                user=settings.STORE_USER,
                password=settings.STORE_PASSWORD,
                database=settings.STORE_DATABASE or None,
            ),
            "worker_count": settings.DEFAULT_WORKER_COUNT,
            "batch_size": settings.DEFAULT_BATCH_SIZE,
            "run_duration_millis": settings.DEFAULT_RUN_DURATION_MILLIS,
            "clean_table_before_run": settings.DEFAULT_CLEAN_TABLE,
            "round_robin": settings.DEFAULT_ROUND_ROBIN,
            "failure_policy": str(settings.DEFAULT_FAILURE_POLICY).lower(),
            "connect_timeout_seconds": settings.STORE_CONNECT_TIMEOUT,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

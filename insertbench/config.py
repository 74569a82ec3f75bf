"""
Application Configuration using Pydantic Settings

Loads configuration from environment variables with sensible defaults.
"""

from typing import List
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # ========================================================================
    # Store Connection Settings
    # ========================================================================
    # Candidate endpoints, tried in order (or round-robin) on every acquisition.
    # Comma-separated "host:port" entries; a bare host means port 5432.
    STORE_ENDPOINTS: str = "localhost:5432,localhost:5433,localhost:5434"
    STORE_USER: str = "crate"
    STORE_PASSWORD: str = ""
    STORE_DATABASE: str = "doc"

    # Per-endpoint connect timeout (seconds). A refused or hung endpoint costs at
    # most this long before failover moves on to the next one.
    STORE_CONNECT_TIMEOUT: float = 10.0

    @field_validator("STORE_ENDPOINTS")
    @classmethod
    def _endpoints_not_empty(cls, v: str) -> str:
        if not [part for part in v.split(",") if part.strip()]:
            raise ValueError("STORE_ENDPOINTS must name at least one endpoint")
        return v

    @property
    def store_endpoints(self) -> List[str]:
        return [part.strip() for part in self.STORE_ENDPOINTS.split(",") if part.strip()]

    # ========================================================================
    # Run Defaults
    # ========================================================================
    DEFAULT_WORKLOAD: str = "sensors"
    DEFAULT_WORKER_COUNT: int = 10
    DEFAULT_BATCH_SIZE: int = 200
    DEFAULT_RUN_DURATION_MILLIS: int = 7_000
    DEFAULT_CLEAN_TABLE: bool = False
    DEFAULT_ROUND_ROBIN: bool = True
    # "fail" aborts the run on the first worker error, "tolerate" keeps going
    # with the surviving workers.
    DEFAULT_FAILURE_POLICY: str = "fail"

    # How many connection attempts the factory keeps for diagnostics.
    CONNECTION_ATTEMPT_HISTORY: int = 256

    # ========================================================================
    # Logging Settings
    # ========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""
    LOG_FORMAT: str = (
        "%(asctime)s - %(name)s - %(levelname)s - [%(run_id)s/%(worker_id)s] %(message)s"
    )


# Create global settings instance
settings = Settings()

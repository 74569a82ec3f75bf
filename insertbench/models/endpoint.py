"""
Endpoint models.

An endpoint is one network address of a store node; the pool is the ordered,
read-only list the connection factory fails over across.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from insertbench.core.errors import RunConfigurationError

DEFAULT_PORT = 5432


class Endpoint(BaseModel):
    """A single `host:port` target."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(..., min_length=1, max_length=255, description="Store host")
    port: int = Field(DEFAULT_PORT, ge=1, le=65535, description="Store port")

    @field_validator("host")
    @classmethod
    def _strip_host(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Endpoint host cannot be empty")
        return v

    @classmethod
    def parse(cls, value: Union[str, "Endpoint"]) -> "Endpoint":
        """Parse `host`, `host:port` or `[v6addr]:port`."""
        if isinstance(value, Endpoint):
            return value
        raw = str(value or "").strip()
        if not raw:
            raise RunConfigurationError("Empty endpoint")

        host, port = raw, DEFAULT_PORT
        if raw.startswith("["):
            end = raw.find("]")
            if end < 0:
                raise RunConfigurationError(f"Malformed endpoint: {raw!r}")
            host = raw[1:end]
            rest = raw[end + 1 :]
            if rest:
                if not rest.startswith(":"):
                    raise RunConfigurationError(f"Malformed endpoint: {raw!r}")
                port = _parse_port(rest[1:], raw)
        elif raw.count(":") == 1:
            host, port_str = raw.split(":", 1)
            port = _parse_port(port_str, raw)

        try:
            return cls(host=host, port=port)
        except ValueError as e:
            raise RunConfigurationError(f"Invalid endpoint {raw!r}: {e}") from e

    @property
    def dsn(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"postgresql://{host}:{self.port}/"

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def _parse_port(port_str: str, raw: str) -> int:
    try:
        return int(port_str)
    except ValueError:
        raise RunConfigurationError(f"Invalid port in endpoint {raw!r}") from None


class EndpointPool:
    """Ordered, immutable collection of endpoints.

    Enumerated once at construction; never mutated afterwards, so it can be
    read from any number of concurrent acquisitions.
    """

    __slots__ = ("_endpoints",)

    def __init__(self, endpoints: Iterable[Union[str, Endpoint]]):
        parsed: Tuple[Endpoint, ...] = tuple(Endpoint.parse(e) for e in endpoints)
        if not parsed:
            raise RunConfigurationError("Endpoint pool must not be empty")
        self._endpoints = parsed

    def __len__(self) -> int:
        return len(self._endpoints)

    def __iter__(self) -> Iterator[Endpoint]:
        return iter(self._endpoints)

    def __getitem__(self, idx: int) -> Endpoint:
        return self._endpoints[idx]

    def __repr__(self) -> str:
        return f"EndpointPool({', '.join(str(e) for e in self._endpoints)})"

    def order_from(self, start: int) -> list[Endpoint]:
        """Endpoints in failover order beginning at `start` (mod pool size)."""
        n = len(self._endpoints)
        start = start % n
        return [self._endpoints[(start + i) % n] for i in range(n)]

    def describe(self) -> str:
        """Comma-separated rendering used in reports (`host:port,host:port`)."""
        return ",".join(str(e) for e in self._endpoints)

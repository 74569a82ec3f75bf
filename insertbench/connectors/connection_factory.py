"""
Connection Factory

Resolves one live store session per request, failing over across an ordered
pool of endpoints. Two acquisition policies:

- fixed order: always start at endpoint 0 and walk forward;
- round robin: start at `next(counter) % len(pool)` and walk forward from
  there, so successive acquisitions spread across endpoints while a dead
  endpoint is still skipped.

Failed endpoints are never remembered. Every acquisition walks the full pool
again, so a transient outage heals on the next call.
"""

from __future__ import annotations

import functools
import itertools
import logging
import time
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Iterable, Iterator, Optional, Union

from insertbench.connectors.asyncpg_connection import (
    CONNECT_ERRORS,
    StoreConnection,
    connect_asyncpg,
)
from insertbench.core.errors import EndpointUnreachable
from insertbench.models import Credentials, Endpoint, EndpointPool, RunConfig

logger = logging.getLogger(__name__)

ConnectFn = Callable[[Endpoint], Awaitable[StoreConnection]]


@dataclass(frozen=True, slots=True)
class ConnectionAttempt:
    """One try against one endpoint.

    Attributes:
        endpoint: Endpoint that was tried
        ok: Whether a session was obtained
        error: Failure description when `ok` is False
        at: Monotonic timestamp of the attempt
    """

    endpoint: Endpoint
    ok: bool
    error: Optional[str] = None
    at: float = 0.0


class ConnectionFactory:
    """
    Hands out store sessions with failover across an endpoint pool.

    The round-robin counter is owned by the instance, so independent factories
    (and therefore independent runs in one process) never disturb each other's
    rotation.
    """

    def __init__(
        self,
        endpoints: Union[EndpointPool, Iterable[Union[str, Endpoint]]],
        *,
        credentials: Optional[Credentials] = None,
        connect: Optional[ConnectFn] = None,
        round_robin: bool = False,
        counter: Optional[Iterator[int]] = None,
        connect_timeout: float = 10.0,
        attempt_history: int = 256,
    ):
        """
        Initialize the connection factory.

        Args:
            endpoints: Endpoint pool (or anything `EndpointPool` accepts)
            credentials: Session credentials for the default asyncpg connector
            connect: Async callable opening a session to one endpoint; defaults
                     to asyncpg with `credentials` and `connect_timeout`
            round_robin: Rotate the starting endpoint across acquisitions
            counter: Round-robin counter; `itertools.count()` when omitted
            connect_timeout: Per-endpoint timeout for the default connector
            attempt_history: How many attempts to keep in `attempts`
        """
        self.pool = endpoints if isinstance(endpoints, EndpointPool) else EndpointPool(endpoints)
        self.credentials = credentials or Credentials()
        self.round_robin = round_robin
        self._counter: Iterator[int] = counter if counter is not None else itertools.count()
        if connect is None:
            connect = functools.partial(
                connect_asyncpg, credentials=self.credentials, timeout=connect_timeout
            )
        self._connect = connect
        self.attempts: deque[ConnectionAttempt] = deque(maxlen=max(1, attempt_history))

        logger.info(
            "Connection factory configured: %s@%s, round_robin=%s",
            self.credentials.user,
            self.pool.describe(),
            round_robin,
        )

    @classmethod
    def from_config(cls, config: RunConfig, **kwargs) -> "ConnectionFactory":
        kwargs.setdefault("credentials", config.credentials)
        kwargs.setdefault("round_robin", config.round_robin)
        kwargs.setdefault("connect_timeout", config.connect_timeout_seconds)
        return cls(config.endpoint_pool(), **kwargs)

    def uri(self) -> str:
        """Human-readable description of the pool for reports."""
        return self.pool.describe()

    def _start_index(self) -> int:
        if not self.round_robin:
            return 0
        # next() on itertools.count is a single atomic step under the GIL.
        return next(self._counter) % len(self.pool)

    async def acquire(self) -> StoreConnection:
        """
        Open a session on the first endpoint that accepts one.

        Returns:
            StoreConnection: Live session, owned by the caller

        Raises:
            EndpointUnreachable: If every endpoint refused during this call
        """
        tried: list[ConnectionAttempt] = []
        for endpoint in self.pool.order_from(self._start_index()):
            logger.debug("Connecting to: %s", endpoint)
            try:
                conn = await self._connect(endpoint)
            except CONNECT_ERRORS as e:
                attempt = ConnectionAttempt(
                    endpoint=endpoint,
                    ok=False,
                    error=f"{type(e).__name__}: {e}",
                    at=time.monotonic(),
                )
                self.attempts.append(attempt)
                tried.append(attempt)
                logger.warning(" >> failed to connect to: %s (%s)", endpoint, attempt.error)
                continue

            attempt = ConnectionAttempt(endpoint=endpoint, ok=True, at=time.monotonic())
            self.attempts.append(attempt)
            logger.info("Connected to: %s", endpoint)
            return conn

        raise EndpointUnreachable(tried)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[StoreConnection]:
        """
        Acquire a session and guarantee it is closed on exit.

        Usage:
            async with factory.connection() as conn:
                await conn.execute("SELECT 1")
        """
        conn = await self.acquire()
        try:
            yield conn
        finally:
            await close_quietly(conn)


async def close_quietly(conn: StoreConnection) -> None:
    """Close a session; a failing close is logged, never raised."""
    try:
        await conn.close()
    except CONNECT_ERRORS as e:
        logger.warning("Failed to close connection to %s: %s", conn.endpoint, e)

"""
asyncpg Store Connection

Thin session wrapper over a single asyncpg connection. The stress engine only
needs: begin a transaction, execute a statement, read one scalar, commit and
close. Everything else asyncpg offers stays out of the worker's way.
"""

import asyncio
import logging
from typing import Any, Optional, Protocol, runtime_checkable

import asyncpg
from asyncpg.transaction import Transaction

from insertbench.models import Credentials, Endpoint

logger = logging.getLogger(__name__)

# Errors that mean "this endpoint did not give us a session"; the connection
# factory moves on to the next endpoint when it sees one of these.
CONNECT_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
)


@runtime_checkable
class StoreConnection(Protocol):
    """A live session to exactly one endpoint."""

    endpoint: Endpoint

    async def begin(self) -> None: ...

    async def execute(self, statement: str) -> Any: ...

    async def fetch_val(self, statement: str) -> Any: ...

    async def fetch_all(self, statement: str) -> list[tuple]: ...

    async def commit(self) -> None: ...

    async def close(self) -> None: ...

    def is_closed(self) -> bool: ...


class AsyncpgStoreConnection:
    """
    `StoreConnection` backed by asyncpg.

    `begin()` opens an explicit transaction so that batches are not committed
    one by one; `commit()` ends it. Without `begin()` every statement runs in
    asyncpg's implicit autocommit mode.
    """

    def __init__(self, conn: asyncpg.Connection, endpoint: Endpoint):
        self._conn = conn
        self.endpoint = endpoint
        self._tx: Optional[Transaction] = None

    async def begin(self) -> None:
        if self._tx is not None:
            return
        tx = self._conn.transaction()
        await tx.start()
        self._tx = tx

    async def execute(self, statement: str) -> str:
        """Execute one statement; returns the status tag (e.g. "INSERT 0 200")."""
        return await self._conn.execute(statement)

    async def fetch_val(self, statement: str) -> Any:
        return await self._conn.fetchval(statement)

    async def fetch_all(self, statement: str) -> list[tuple]:
        # Records converted to plain tuples, as the rest of the code expects.
        rows = await self._conn.fetch(statement)
        return [tuple(row.values()) for row in rows]

    async def commit(self) -> None:
        tx, self._tx = self._tx, None
        if tx is not None:
            await tx.commit()

    async def close(self) -> None:
        if self._conn.is_closed():
            return
        tx, self._tx = self._tx, None
        if tx is not None:
            try:
                await tx.rollback()
            except CONNECT_ERRORS as e:
                logger.warning("Failed to roll back open transaction on %s: %s", self.endpoint, e)
        await self._conn.close()

    def is_closed(self) -> bool:
        return self._conn.is_closed()


async def connect_asyncpg(
    endpoint: Endpoint,
    credentials: Credentials,
    *,
    timeout: float = 10.0,
) -> AsyncpgStoreConnection:
    """Open one asyncpg session to `endpoint`; raises on refusal or timeout."""
    conn = await asyncpg.connect(
        host=endpoint.host,
        port=endpoint.port,
        user=credentials.user,
        password=credentials.password or None,
        database=credentials.database,
        timeout=timeout,
        # CrateDB (and PgBouncer-style poolers) do not support the prepared
        # statement cache.
        statement_cache_size=0,
    )
    return AsyncpgStoreConnection(conn, endpoint)

"""
In-memory stand-ins for a PostgreSQL-wire store.

`FakeStore` keeps one table's row count; `FakeConnection` buffers inserted
rows until `commit()` and logs every call it receives; `FakeConnector` is a
`connect(endpoint)` strategy with endpoints that can be taken up and down.
"""

import asyncio
from typing import Any, Callable, Optional

from insertbench.models import Endpoint


def rows_in(statement: str) -> int:
    """Number of VALUES tuples in a multi-row INSERT."""
    _, _, values = statement.partition(" VALUES")
    if not values.strip():
        return 0
    return values.count("), (") + 1


class FakeStore:
    def __init__(
        self,
        *,
        count: int = 0,
        execute_delay: float = 0.0,
        count_value: Optional[Callable[["FakeStore"], Any]] = None,
    ) -> None:
        self.count = count
        self.execute_delay = execute_delay
        self._count_value = count_value
        self.connections: list["FakeConnection"] = []
        self.statements: list[str] = []
        self.fail_statement: Optional[Callable[[str], bool]] = None
        self.fail_on_nth_insert: dict[int, int] = {}
        self.open_connections = 0
        self.peak_open_connections = 0
        self.failed_statements: list[tuple] = []
        self.fail_commit = False
        self.fail_close = False

    def open(self, endpoint: Endpoint) -> "FakeConnection":
        conn = FakeConnection(self, endpoint, conn_id=len(self.connections))
        self.connections.append(conn)
        self.open_connections += 1
        self.peak_open_connections = max(self.peak_open_connections, self.open_connections)
        return conn

    def count_result(self) -> Any:
        if self._count_value is not None:
            return self._count_value(self)
        return self.count

    @property
    def inserts(self) -> list[str]:
        return [s for s in self.statements if s.startswith("INSERT")]


class FakeConnection:
    def __init__(self, store: FakeStore, endpoint: Endpoint, *, conn_id: int) -> None:
        self.store = store
        self.endpoint = endpoint
        self.conn_id = conn_id
        self.calls: list[str] = []
        self.in_transaction = False
        self.pending_rows = 0
        self.inserts_executed = 0
        self.committed = False
        self.closed = False
        self.overlapping_calls = 0
        self._busy = False

    async def _enter(self, call: str) -> None:
        if self._busy:
            self.overlapping_calls += 1
        self._busy = True
        self.calls.append(call)
        if self.store.execute_delay:
            await asyncio.sleep(self.store.execute_delay)

    def _leave(self) -> None:
        self._busy = False

    async def begin(self) -> None:
        await self._enter("begin")
        self._leave()
        self.in_transaction = True

    async def execute(self, statement: str) -> str:
        assert not self.closed, "execute on closed connection"
        await self._enter("execute")
        try:
            self.store.statements.append(statement)
            if self.store.fail_statement is not None and self.store.fail_statement(statement):
                raise OSError(f"store rejected statement on connection {self.conn_id}")
            upper = statement.upper()
            if upper.startswith("INSERT"):
                self.inserts_executed += 1
                nth = self.store.fail_on_nth_insert.get(self.conn_id)
                if nth is not None and self.inserts_executed >= nth:
                    raise OSError(f"write failed on connection {self.conn_id}")
                rows = rows_in(statement)
                if self.in_transaction:
                    self.pending_rows += rows
                else:
                    self.store.count += rows
                return f"INSERT 0 {rows}"
            if upper.startswith("DROP TABLE"):
                self.store.count = 0
                return "DROP TABLE"
            if upper.startswith("CREATE TABLE"):
                return "CREATE TABLE"
            return "OK"
        finally:
            self._leave()

    async def fetch_val(self, statement: str) -> Any:
        await self._enter("fetch_val")
        self._leave()
        self.store.statements.append(statement)
        return self.store.count_result()

    async def fetch_all(self, statement: str) -> list[tuple]:
        await self._enter("fetch_all")
        self._leave()
        self.store.statements.append(statement)
        return list(self.store.failed_statements)

    async def commit(self) -> None:
        await self._enter("commit")
        self._leave()
        if self.store.fail_commit:
            raise OSError("commit refused")
        self.store.count += self.pending_rows
        self.pending_rows = 0
        self.in_transaction = False
        self.committed = True

    async def close(self) -> None:
        if self.closed:
            return
        self.calls.append("close")
        self.closed = True
        # Uncommitted rows are lost, as with a real rollback.
        self.pending_rows = 0
        self.store.open_connections -= 1
        if self.store.fail_close:
            raise RuntimeError("socket already torn down")

    def is_closed(self) -> bool:
        return self.closed


class FakeConnector:
    """`connect(endpoint)` strategy; endpoints in `down` refuse connections."""

    def __init__(self, store: Optional[FakeStore] = None, *, down: Optional[set[str]] = None):
        self.store = store or FakeStore()
        self.down: set[str] = set(down or ())
        self.tried: list[str] = []

    async def __call__(self, endpoint: Endpoint) -> FakeConnection:
        self.tried.append(str(endpoint))
        if str(endpoint) in self.down:
            raise ConnectionRefusedError(f"connection refused: {endpoint}")
        return self.store.open(endpoint)


class FakeScheduler:
    """Replacement for `loop.call_later`; fire callbacks by hand."""

    class Handle:
        def __init__(self) -> None:
            self.cancelled = False

        def cancel(self) -> None:
            self.cancelled = True

    def __init__(self) -> None:
        self.scheduled: list[tuple[float, Callable[[], None], "FakeScheduler.Handle"]] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> "FakeScheduler.Handle":
        handle = FakeScheduler.Handle()
        self.scheduled.append((delay, callback, handle))
        return handle

    def fire_all(self) -> None:
        for _, callback, handle in self.scheduled:
            if not handle.cancelled:
                callback()

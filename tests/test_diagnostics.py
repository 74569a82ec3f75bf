import pytest

from fake_store import FakeConnector, FakeStore
from insertbench.connectors import ConnectionFactory
from insertbench.core.diagnostics import FailedStatement, fetch_failed_statements


@pytest.mark.asyncio
async def test_fetch_failed_statements_reads_jobs_log():
    store = FakeStore()
    store.failed_statements = [
        ("2026-01-02T10:00:00", "DuplicateKeyException", "INSERT INTO doc.sensors ..."),
        (None, None, None),
    ]
    factory = ConnectionFactory(["a:5432"], connect=FakeConnector(store))

    statements = await fetch_failed_statements(factory, limit=5)

    assert statements[0] == FailedStatement(
        ended="2026-01-02T10:00:00",
        error="DuplicateKeyException",
        stmt="INSERT INTO doc.sensors ...",
    )
    assert statements[1] == FailedStatement(ended=None, error="", stmt="")
    query = store.statements[-1]
    assert "FROM sys.jobs_log" in query
    assert "stmt != 'ROLLBACK'" in query
    assert query.endswith("LIMIT 5")
    assert store.open_connections == 0


@pytest.mark.asyncio
async def test_fetch_failed_statements_clamps_limit():
    store = FakeStore()
    factory = ConnectionFactory(["a:5432"], connect=FakeConnector(store))

    statements = await fetch_failed_statements(factory, limit=0)

    assert statements == []
    assert store.statements[-1].endswith("LIMIT 1")


def test_render_truncates_long_statements():
    statement = FailedStatement(ended="t", error="boom", stmt="x" * 300)

    rendered = statement.render(max_stmt_chars=10)

    assert rendered == "t ERROR: boom\n  - query: xxxxxxxxxx...[truncated]"

"""
Failed statement diagnostics.

CrateDB keeps recently executed statements in `sys.jobs_log`, including the
error text of the ones that failed. After a failed or suspicious run this is
the quickest way to see what the cluster rejected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from insertbench.connectors.connection_factory import ConnectionFactory

logger = logging.getLogger(__name__)

FAILED_STATEMENTS_SQL = (
    "SELECT date_format(ended), error, stmt "
    "FROM sys.jobs_log "
    "WHERE error IS NOT NULL AND stmt != 'ROLLBACK' "
    "ORDER BY ended DESC "
    "LIMIT {limit}"
)


@dataclass(frozen=True, slots=True)
class FailedStatement:
    ended: Optional[str]
    error: str
    stmt: str

    def render(self, *, max_stmt_chars: int = 200) -> str:
        stmt = self.stmt
        if len(stmt) > max_stmt_chars:
            stmt = stmt[:max_stmt_chars] + "...[truncated]"
        return f"{self.ended} ERROR: {self.error}\n  - query: {stmt}"


async def fetch_failed_statements(
    factory: ConnectionFactory, *, limit: int = 20
) -> list[FailedStatement]:
    """
    Read the most recent failed statements from `sys.jobs_log`.

    Args:
        factory: Connection factory for an admin session
        limit: Maximum number of rows to return

    Returns:
        Failed statements, newest first
    """
    limit = max(1, int(limit))
    async with factory.connection() as conn:
        rows: Any = await conn.fetch_all(FAILED_STATEMENTS_SQL.format(limit=limit))
    out: list[FailedStatement] = []
    for row in rows or []:
        ended, error, stmt = tuple(row)[:3]
        out.append(
            FailedStatement(
                ended=str(ended) if ended is not None else None,
                error=str(error or ""),
                stmt=str(stmt or ""),
            )
        )
    logger.debug("Fetched %d failed statements from sys.jobs_log", len(out))
    return out

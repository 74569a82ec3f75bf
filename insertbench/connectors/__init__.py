"""
Store connectors.
"""

from insertbench.connectors.asyncpg_connection import (
    CONNECT_ERRORS,
    AsyncpgStoreConnection,
    StoreConnection,
    connect_asyncpg,
)
from insertbench.connectors.connection_factory import (
    ConnectionAttempt,
    ConnectionFactory,
    close_quietly,
)

__all__ = [
    "CONNECT_ERRORS",
    "AsyncpgStoreConnection",
    "StoreConnection",
    "connect_asyncpg",
    "ConnectionAttempt",
    "ConnectionFactory",
    "close_quietly",
]

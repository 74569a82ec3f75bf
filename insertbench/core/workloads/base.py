"""
Workload strategy interface.

A workload supplies the table contract (name, DDL, insert prefix) and the
batch generator. The stress engine only calls into it; it never subclasses
the engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class Workload(ABC):
    """Table contract plus batch generator for one insert target."""

    def __init__(self, batch_size: int):
        if int(batch_size) <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = int(batch_size)

    @abstractmethod
    def table_name(self) -> str:
        """Fully-qualified target table."""

    @abstractmethod
    def create_statement(self) -> str:
        """DDL that (re)creates the target table."""

    @abstractmethod
    def insert_prefix(self) -> str:
        """`INSERT INTO t(cols) VALUES` prefix shared by every batch."""

    @abstractmethod
    def row_values(self) -> str:
        """One parenthesized VALUES tuple, e.g. `(1,'a',2.0)`."""

    def drop_statement(self) -> str:
        return f"DROP TABLE IF EXISTS {self.table_name()}"

    def refresh_statement(self) -> Optional[str]:
        """Statement that makes freshly written rows visible to count(*).

        CrateDB only exposes new rows to queries after a refresh; stores
        without that notion can return None.
        """
        return f"REFRESH TABLE {self.table_name()}"

    def count_statement(self) -> str:
        return f"SELECT count(*) FROM {self.table_name()}"

    def next_batch(self) -> str:
        """A fresh multi-row INSERT with `batch_size` tuples."""
        values = ", ".join(self.row_values() for _ in range(self.batch_size))
        return f"{self.insert_prefix()}{values}"

    def sample_batch(self) -> str:
        """A batch shaped like `next_batch()` for size estimates.

        Workloads whose rows draw from a shared sequence override this so the
        sample does not consume values meant for real inserts.
        """
        return self.next_batch()

    def describe(self) -> str:
        return f"{type(self).__name__}(table={self.table_name()}, batch_size={self.batch_size})"


def quoted(s: str) -> str:
    """SQL string literal with embedded quotes doubled."""
    return "'" + str(s).replace("'", "''") + "'"

"""Abstract data-plane every storage target implements."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from mockcraft.core.context import RunContext
from mockcraft.core.models import Index, Relationship, Table


class Transaction(ABC):
    """A unit of work opened by :meth:`Backend.begin_transaction`."""

    @abstractmethod
    def commit(self) -> None:
        """Make the work durable."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard the work."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()


class Backend(ABC):
    """Storage target for seeded data.

    Every call takes a :class:`RunContext`; implementations check it before
    doing I/O so cancellation takes effect at the next call.
    """

    @abstractmethod
    def connect(self, ctx: RunContext) -> None:
        """Open the connection."""

    @abstractmethod
    def close(self) -> None:
        """Release the connection."""

    @abstractmethod
    def driver_name(self) -> str:
        """Name of the underlying driver, e.g. ``postgresql``."""

    @abstractmethod
    def create_table(self, ctx: RunContext, name: str, table: Table,
                     relationships: List[Relationship]) -> None:
        """Create structure for ``table``, with foreign keys where the store supports them."""

    @abstractmethod
    def create_index(self, ctx: RunContext, table: str, index: Index) -> None:
        """Create one index."""

    @abstractmethod
    def drop_table(self, ctx: RunContext, name: str) -> None:
        """Drop ``name`` if it exists."""

    @abstractmethod
    def insert_batch(self, ctx: RunContext, table: str, rows: List[Dict[str, Any]]) -> int:
        """Insert ``rows`` all-or-nothing and return how many were written."""

    @abstractmethod
    def primary_keys(self, ctx: RunContext, table: str) -> List[Any]:
        """Values of the table's primary key column."""

    @abstractmethod
    def foreign_key_values(self, ctx: RunContext, table: str, column: str) -> List[Any]:
        """Values of ``column`` in every row of ``table``."""

    @abstractmethod
    def verify_integrity(self, ctx: RunContext, from_table: str, from_column: str,
                         to_table: str, to_column: str) -> bool:
        """True when every non-null ``to_column`` value exists in ``from_column``."""

    @abstractmethod
    def backup(self, ctx: RunContext, path: str) -> None:
        """Write a dialect-specific backup to ``path``."""

    @abstractmethod
    def restore(self, ctx: RunContext, path: str) -> None:
        """Restore a backup written by :meth:`backup`."""

    @abstractmethod
    def begin_transaction(self, ctx: RunContext) -> Transaction:
        """Open an explicit transaction."""

    def __enter__(self):
        """Context manager entry."""
        self.connect(RunContext())
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

"""Backend that writes seeded tables to CSV, JSON or SQL files instead of a database."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from mockcraft.core.context import RunContext
from mockcraft.core.errors import BackendIOError, BackupError
from mockcraft.core.models import Index, Relationship, Table
from mockcraft.core.output import OUTPUT_FORMATS, write_csv, write_json, write_sql
from .base import Backend, Transaction

logger = logging.getLogger(__name__)


class _NoopTransaction(Transaction):
    def commit(self) -> None:
        pass

    def rollback(self) -> None:
        pass


class FileBackend(Backend):
    """Buffers rows per table and writes them out, in creation order, on close."""

    def __init__(self, directory: str, output_format: str = "json"):
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Unsupported output format: {output_format}. Supported: {OUTPUT_FORMATS}")
        self.directory = Path(directory)
        self.output_format = output_format
        self.tables: Dict[str, Table] = {}
        self.rows: Dict[str, List[Dict[str, Any]]] = {}
        self._written = False

    def driver_name(self) -> str:
        return self.output_format

    def connect(self, ctx: RunContext) -> None:
        ctx.check()
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackendIOError(f"Cannot create output directory {self.directory}: {e}") from e
        self._written = False

    def close(self) -> None:
        if not self._written:
            self.flush()

    def flush(self) -> List[Path]:
        """Write every buffered table and return the files written."""
        paths = []
        try:
            if self.output_format == "sql":
                ordered = [(table, self.rows.get(name, [])) for name, table in self.tables.items()]
                paths.append(write_sql(self.directory / "seed.sql", ordered))
            else:
                writer = write_csv if self.output_format == "csv" else write_json
                for name in self.tables:
                    paths.append(writer(self.directory, name, self.rows.get(name, [])))
        except OSError as e:
            raise BackendIOError(f"Failed to write {self.output_format} output: {e}") from e
        self._written = True
        return paths

    def create_table(self, ctx: RunContext, name: str, table: Table,
                     relationships: List[Relationship]) -> None:
        ctx.check()
        self.tables[name] = table
        self.rows.setdefault(name, [])

    def create_index(self, ctx: RunContext, table: str, index: Index) -> None:
        ctx.check()

    def drop_table(self, ctx: RunContext, name: str) -> None:
        ctx.check()
        self.tables.pop(name, None)
        self.rows.pop(name, None)

    def insert_batch(self, ctx: RunContext, table: str, rows: List[Dict[str, Any]]) -> int:
        ctx.check()
        if table not in self.tables:
            raise BackendIOError(f"Table {table} was not created", table=table)
        self.rows[table].extend(dict(row) for row in rows)
        return len(rows)

    def _primary_key(self, table: str) -> Optional[str]:
        if table not in self.tables:
            raise BackendIOError(f"Table {table} was not created", table=table)
        primary = self.tables[table].primary_key
        return primary.name if primary else None

    def primary_keys(self, ctx: RunContext, table: str) -> List[Any]:
        column = self._primary_key(table)
        if column is None:
            return []
        return self.foreign_key_values(ctx, table, column)

    def foreign_key_values(self, ctx: RunContext, table: str, column: str) -> List[Any]:
        ctx.check()
        return [row.get(column) for row in self.rows.get(table, [])]

    def verify_integrity(self, ctx: RunContext, from_table: str, from_column: str,
                         to_table: str, to_column: str) -> bool:
        parents = set(self.foreign_key_values(ctx, from_table, from_column))
        return all(v is None or v in parents for v in self.foreign_key_values(ctx, to_table, to_column))

    def begin_transaction(self, ctx: RunContext) -> Transaction:
        ctx.check()
        return _NoopTransaction()

    def backup(self, ctx: RunContext, path: str) -> None:
        raise BackupError("File output has nothing to back up")

    def restore(self, ctx: RunContext, path: str) -> None:
        raise BackupError("File output cannot be restored")

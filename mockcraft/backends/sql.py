"""Relational backend for PostgreSQL, MySQL and SQLite built on SQLAlchemy."""

import json
import logging
import os
import shutil
import subprocess
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON, BigInteger, Boolean, Column as SAColumn, Date, DateTime, Float, ForeignKey,
    Index as SAIndex, Integer, LargeBinary, MetaData, SmallInteger, String, Table as SATable,
    Text, Time, create_engine, event, select, text,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from mockcraft.core.context import RunContext
from mockcraft.core.database import DatabaseConfig
from mockcraft.core.errors import BackendIOError, BackupError
from mockcraft.core.models import Column, Index, Relationship, Table
from .base import Backend, Transaction

logger = logging.getLogger(__name__)

NATIVE_TYPES = (str, int, float, bool, bytes, Decimal, date, datetime, time)


def column_type(column: Column, driver: str):
    """Map a logical column type to a SQLAlchemy type."""
    kind = (column.type or "").lower()
    max_length = column.params.get("max_length")

    if kind in ("string", "text", "char"):
        return String(int(max_length)) if max_length else Text()
    if kind == "varchar":
        return String(int(max_length or 255))
    if kind == "uuid":
        return String(36)
    if kind in ("integer", "int", "serial"):
        return Integer()
    if kind in ("bigint", "bigserial"):
        return BigInteger()
    if kind == "smallint":
        return SmallInteger()
    if kind in ("float", "double", "decimal", "numeric"):
        return Float()
    if kind in ("boolean", "bool"):
        return Boolean()
    if kind == "date":
        return Date()
    if kind in ("datetime", "timestamp"):
        return DateTime()
    if kind == "time":
        return Time()
    if kind in ("json", "jsonb"):
        if driver == "postgresql" and kind == "jsonb":
            from sqlalchemy.dialects.postgresql import JSONB
            return JSONB()
        return JSON()
    if kind in ("bytea", "blob", "binary", "varbinary"):
        return LargeBinary()
    return Text()


class SQLTransaction(Transaction):
    """Transaction bound to one pooled connection."""

    def __init__(self, connection: Connection):
        self.connection = connection
        self._transaction = connection.begin()

    def commit(self) -> None:
        try:
            self._transaction.commit()
        except SQLAlchemyError as e:
            raise BackendIOError(f"Commit failed: {e}") from e
        finally:
            self.connection.close()

    def rollback(self) -> None:
        try:
            self._transaction.rollback()
        finally:
            self.connection.close()


class SQLBackend(Backend):
    """Relational backend: DDL with foreign keys, one transaction per insert batch."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._engine: Optional[Engine] = None
        self.metadata = MetaData()
        self._primary_keys: Dict[str, Optional[str]] = {}

    def driver_name(self) -> str:
        return self.config.driver

    def connect(self, ctx: RunContext) -> None:
        """Establish connection to the database."""
        ctx.check()
        try:
            if self.config.driver == "sqlite":
                logger.info(f"Opening SQLite database {self.config.database}")
                self._engine = create_engine(self.config.sqlalchemy_url(), echo=False)
                if self.config.options.get("foreign_keys", "").lower() in ("on", "true", "1"):
                    event.listen(self._engine, "connect", _enable_sqlite_foreign_keys)
            else:
                logger.info(f"Connecting to {self.config.driver} database at "
                            f"{self.config.host}:{self.config.port}")
                self._engine = create_engine(
                    self.config.sqlalchemy_url(),
                    echo=False,
                    pool_pre_ping=True,
                    pool_recycle=self.config.conn_max_lifetime,
                    pool_size=self.config.max_idle_conns,
                    max_overflow=max(0, self.config.max_open_conns - self.config.max_idle_conns),
                    connect_args=self._get_connect_args(),
                )

            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection established successfully")
        except SQLAlchemyError as e:
            logger.error(f"Failed to connect to database: {e}")
            raise BackendIOError(f"Database connection failed: {e}") from e

    def _get_connect_args(self) -> Dict[str, Any]:
        """Get driver-specific connection arguments."""
        args: Dict[str, Any] = {}
        if self.config.driver == "mysql":
            args["charset"] = self.config.charset
        elif self.config.driver == "postgresql":
            args["sslmode"] = self.config.ssl_mode
        return args

    @property
    def engine(self) -> Engine:
        """Get the SQLAlchemy engine."""
        if self._engine is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._engine

    def close(self) -> None:
        """Close database connection and cleanup resources."""
        if self._engine:
            self._engine.dispose()
            self._engine = None
            logger.info("Database connection closed")

    def quote_identifier(self, identifier: str) -> str:
        """Quote table or column name properly based on database type."""
        if self.config.driver == "mysql":
            return f"`{identifier}`"
        return f'"{identifier}"'

    def create_table(self, ctx: RunContext, name: str, table: Table,
                     relationships: List[Relationship]) -> None:
        ctx.check()
        if name in self.metadata.tables:
            self.metadata.remove(self.metadata.tables[name])

        columns = []
        for column in table.columns:
            references = [
                ForeignKey(
                    f"{rel.from_table}.{rel.from_column}",
                    name=f"fk_{name}_{rel.to_column}_{rel.from_table}",
                    ondelete="CASCADE",
                    onupdate="CASCADE",
                )
                for rel in relationships
                if rel.to_table == name and rel.to_column == column.name
                and rel.from_table in self.metadata.tables
            ]
            columns.append(SAColumn(
                column.name,
                column_type(column, self.config.driver),
                *references,
                primary_key=column.is_primary,
                autoincrement=False,
                nullable=column.is_nullable and not column.is_primary,
                unique=column.is_unique and not column.is_primary,
                server_default=None if column.default is None else str(column.default),
            ))

        sa_table = SATable(name, self.metadata, *columns)
        primary = table.primary_key
        self._primary_keys[name] = primary.name if primary else None

        try:
            with self.engine.begin() as conn:
                sa_table.create(conn, checkfirst=True)
            logger.info(f"Created table {name}")
        except SQLAlchemyError as e:
            raise BackendIOError(f"Failed to create table {name}: {e}", table=name) from e

    def create_index(self, ctx: RunContext, table: str, index: Index) -> None:
        ctx.check()
        sa_table = self._table(table)
        sa_index = SAIndex(index.name, *[sa_table.c[c] for c in index.columns], unique=index.is_unique)
        try:
            with self.engine.begin() as conn:
                sa_index.create(conn, checkfirst=True)
            logger.debug(f"Created index {index.name} on {table}")
        except SQLAlchemyError as e:
            raise BackendIOError(f"Failed to create index {index.name} on {table}: {e}", table=table) from e

    def drop_table(self, ctx: RunContext, name: str) -> None:
        ctx.check()
        statement = f"DROP TABLE IF EXISTS {self.quote_identifier(name)}"
        if self.config.driver == "postgresql":
            statement += " CASCADE"
        try:
            with self.engine.begin() as conn:
                conn.execute(text(statement))
        except SQLAlchemyError as e:
            raise BackendIOError(f"Failed to drop table {name}: {e}", table=name) from e
        if name in self.metadata.tables:
            self.metadata.remove(self.metadata.tables[name])
        self._primary_keys.pop(name, None)
        logger.debug(f"Dropped table {name}")

    def _table(self, name: str) -> SATable:
        """Table object from this run, reflected from the database when unknown."""
        if name in self.metadata.tables:
            return self.metadata.tables[name]
        try:
            return SATable(name, self.metadata, autoload_with=self.engine)
        except SQLAlchemyError as e:
            raise BackendIOError(f"Table {name} not found: {e}", table=name) from e

    def _prepare_row(self, sa_table: SATable, row: Dict[str, Any]) -> Dict[str, Any]:
        """Encode values the column type cannot take natively."""
        prepared = {}
        for key, value in row.items():
            column = sa_table.c.get(key)
            if value is None or (column is not None and isinstance(column.type, JSON)):
                prepared[key] = value
            elif isinstance(value, (dict, list, tuple)):
                prepared[key] = json.dumps(value, default=str)
            elif not isinstance(value, NATIVE_TYPES):
                prepared[key] = str(value)
            else:
                prepared[key] = value
        return prepared

    def insert_batch(self, ctx: RunContext, table: str, rows: List[Dict[str, Any]]) -> int:
        """Insert a single batch of data in one transaction."""
        ctx.check()
        if not rows:
            return 0
        sa_table = self._table(table)
        batch = [self._prepare_row(sa_table, row) for row in rows]
        try:
            with self.engine.begin() as conn:
                conn.execute(sa_table.insert(), batch)
            return len(batch)
        except SQLAlchemyError as e:
            logger.error(f"Database error during batch insert into {table}: {e}")
            raise BackendIOError(f"Batch insert into {table} failed: {e}", table=table) from e

    def _primary_key_column(self, table: str) -> str:
        column = self._primary_keys.get(table)
        if column:
            return column
        keys = list(self._table(table).primary_key.columns)
        if not keys:
            raise BackendIOError(f"Table {table} has no primary key", table=table)
        return keys[0].name

    def _select_column(self, ctx: RunContext, table: str, column: str) -> List[Any]:
        ctx.check()
        sa_table = self._table(table)
        try:
            with self.engine.connect() as conn:
                return [r[0] for r in conn.execute(select(sa_table.c[column]))]
        except (SQLAlchemyError, KeyError) as e:
            raise BackendIOError(f"Failed to read {table}.{column}: {e}", table=table) from e

    def primary_keys(self, ctx: RunContext, table: str) -> List[Any]:
        return self._select_column(ctx, table, self._primary_key_column(table))

    def foreign_key_values(self, ctx: RunContext, table: str, column: str) -> List[Any]:
        return self._select_column(ctx, table, column)

    def count_orphans(self, ctx: RunContext, from_table: str, from_column: str,
                      to_table: str, to_column: str) -> int:
        """Count child rows whose non-null reference has no parent row."""
        ctx.check()
        q = self.quote_identifier
        query = f"""
            SELECT COUNT(*) FROM {q(to_table)} t1
            LEFT JOIN {q(from_table)} t2
            ON t1.{q(to_column)} = t2.{q(from_column)}
            WHERE t2.{q(from_column)} IS NULL
            AND t1.{q(to_column)} IS NOT NULL
        """
        try:
            with self.engine.connect() as conn:
                return conn.execute(text(query)).scalar() or 0
        except SQLAlchemyError as e:
            raise BackendIOError(f"Integrity check on {to_table}.{to_column} failed: {e}",
                                 table=to_table) from e

    def verify_integrity(self, ctx: RunContext, from_table: str, from_column: str,
                         to_table: str, to_column: str) -> bool:
        return self.count_orphans(ctx, from_table, from_column, to_table, to_column) == 0

    def begin_transaction(self, ctx: RunContext) -> Transaction:
        ctx.check()
        try:
            return SQLTransaction(self.engine.connect())
        except SQLAlchemyError as e:
            raise BackendIOError(f"Failed to begin transaction: {e}") from e

    # Backup and restore

    def backup(self, ctx: RunContext, path: str) -> None:
        ctx.check()
        driver = self.config.driver
        if driver == "sqlite":
            self._copy_file(self.config.database, path)
        elif driver == "postgresql":
            self._run_tool(ctx, [
                "pg_dump", f"--dbname={self._postgres_dsn()}", f"--file={path}",
                "--format=c", "--compress=9", "--clean", "--create",
            ], {"PGPASSWORD": self.config.password})
        elif driver == "mysql":
            self._run_tool(ctx, [
                "mysqldump", *self._mysql_args(), "--single-transaction",
                f"--result-file={path}", self.config.database,
            ], {"MYSQL_PWD": self.config.password})
        logger.info(f"Backed up {driver} database to {path}")

    def restore(self, ctx: RunContext, path: str) -> None:
        ctx.check()
        if not os.path.exists(path):
            raise BackupError(f"Backup file {path} does not exist")
        driver = self.config.driver
        if driver == "sqlite":
            if self._engine is not None:
                self._engine.dispose()
            self._copy_file(path, self.config.database)
        elif driver == "postgresql":
            self._run_tool(ctx, [
                "pg_restore", f"--dbname={self._postgres_dsn()}", "--clean", "--if-exists",
                "--no-owner", path,
            ], {"PGPASSWORD": self.config.password})
        elif driver == "mysql":
            with open(path, "rb") as dump:
                self._run_tool(ctx, ["mysql", *self._mysql_args(), self.config.database],
                               {"MYSQL_PWD": self.config.password}, stdin=dump)
        self.metadata.clear()
        self._primary_keys.clear()
        logger.info(f"Restored {driver} database from {path}")

    def _postgres_dsn(self) -> str:
        # Password travels in PGPASSWORD, never on the command line
        return (f"postgresql://{self.config.username}@{self.config.host}:{self.config.port}"
                f"/{self.config.database}?sslmode={self.config.ssl_mode}")

    def _mysql_args(self) -> List[str]:
        return [f"--host={self.config.host}", f"--port={self.config.port}", f"--user={self.config.username}"]

    @staticmethod
    def _copy_file(source: str, destination: str) -> None:
        try:
            shutil.copyfile(source, destination)
            with open(destination, "rb+") as f:
                os.fsync(f.fileno())
        except OSError as e:
            raise BackupError(f"Copying {source} to {destination} failed: {e}") from e

    @staticmethod
    def _run_tool(ctx: RunContext, command: List[str], env: Dict[str, str], stdin=None) -> None:
        logger.debug(f"Running {command[0]}")
        try:
            subprocess.run(
                command,
                env={**os.environ, **env},
                stdin=stdin,
                capture_output=True,
                text=True,
                check=True,
                timeout=ctx.remaining(),
            )
        except subprocess.CalledProcessError as e:
            raise BackupError(f"{command[0]} failed: {e.stderr.strip() if e.stderr else e}") from e
        except (OSError, subprocess.TimeoutExpired) as e:
            raise BackupError(f"{command[0]} failed: {e}") from e


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

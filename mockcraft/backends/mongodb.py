"""Document backend built on pymongo.

Collections need no DDL; the primary key gets a unique index and foreign keys
are only as good as the values the seeder generates.
"""

import logging
import os
import subprocess
import tempfile
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional

import yaml
from bson import Decimal128
from pymongo import ASCENDING, MongoClient
from pymongo.errors import PyMongoError

from mockcraft.core.context import RunContext
from mockcraft.core.database import DatabaseConfig
from mockcraft.core.errors import BackendIOError, BackupError
from mockcraft.core.models import Index, Relationship, Table
from .base import Backend, Transaction

logger = logging.getLogger(__name__)


def to_document(row: Dict[str, Any]) -> Dict[str, Any]:
    """Convert values BSON cannot encode (dates, times, decimals, tuples)."""
    return {key: _to_bson(value) for key, value in row.items()}


def _to_bson(value: Any) -> Any:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, Decimal):
        return Decimal128(value)
    if isinstance(value, dict):
        return to_document(value)
    if isinstance(value, (list, tuple, set)):
        return [_to_bson(v) for v in value]
    return value


class MongoTransaction(Transaction):
    """Multi-document transaction on a client session (replica sets only)."""

    def __init__(self, client: MongoClient):
        self.session = client.start_session()
        self.session.start_transaction()

    def commit(self) -> None:
        try:
            self.session.commit_transaction()
        except PyMongoError as e:
            raise BackendIOError(f"Commit failed: {e}") from e
        finally:
            self.session.end_session()

    def rollback(self) -> None:
        try:
            self.session.abort_transaction()
        finally:
            self.session.end_session()


class MongoBackend(Backend):
    """MongoDB backend."""

    def __init__(self, config: DatabaseConfig, client: Optional[MongoClient] = None):
        self.config = config
        self._client = client
        self._primary_keys: Dict[str, str] = {}
        # Multi-document transactions need a replica set
        self.use_transactions = bool(config.replica_set)

    def driver_name(self) -> str:
        return "mongodb"

    def connect(self, ctx: RunContext) -> None:
        ctx.check()
        try:
            if self._client is None:
                self._client = MongoClient(
                    self.config.mongo_uri(),
                    maxPoolSize=self.config.max_open_conns,
                    minPoolSize=self.config.max_idle_conns,
                    maxIdleTimeMS=self.config.conn_max_idle_time * 1000,
                    replicaSet=self.config.replica_set,
                    authSource=self.config.auth_source or "admin",
                    tls=self.config.ssl_mode == "require",
                )
            self._client.admin.command("ping")
            logger.info(f"Connected to MongoDB database {self.config.database}")
        except PyMongoError as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise BackendIOError(f"MongoDB connection failed: {e}") from e

    @property
    def client(self) -> MongoClient:
        if self._client is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._client

    @property
    def db(self):
        return self.client[self.config.database]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("MongoDB connection closed")

    def create_table(self, ctx: RunContext, name: str, table: Table,
                     relationships: List[Relationship]) -> None:
        ctx.check()
        primary = table.primary_key
        self._primary_keys[name] = primary.name if primary else "_id"
        if primary is None or primary.name == "_id":
            return
        try:
            self.db[name].create_index(
                [(primary.name, ASCENDING)], unique=True, name=f"{name}_{primary.name}_unique"
            )
        except PyMongoError as e:
            raise BackendIOError(f"Failed to index {name}.{primary.name}: {e}", table=name) from e

    def create_index(self, ctx: RunContext, table: str, index: Index) -> None:
        ctx.check()
        try:
            self.db[table].create_index(
                [(column, ASCENDING) for column in index.columns],
                unique=index.is_unique,
                name=index.name,
            )
        except PyMongoError as e:
            raise BackendIOError(f"Failed to create index {index.name} on {table}: {e}", table=table) from e

    def drop_table(self, ctx: RunContext, name: str) -> None:
        ctx.check()
        try:
            self.db.drop_collection(name)
        except PyMongoError as e:
            raise BackendIOError(f"Failed to drop collection {name}: {e}", table=name) from e
        logger.debug(f"Dropped collection {name}")

    def insert_batch(self, ctx: RunContext, table: str, rows: List[Dict[str, Any]]) -> int:
        ctx.check()
        if not rows:
            return 0
        documents = [to_document(row) for row in rows]
        try:
            if self.use_transactions:
                with self.client.start_session() as session:
                    with session.start_transaction():
                        self.db[table].insert_many(documents, ordered=True, session=session)
            else:
                self.db[table].insert_many(documents, ordered=True)
            return len(documents)
        except PyMongoError as e:
            logger.error(f"Database error during batch insert into {table}: {e}")
            raise BackendIOError(f"Batch insert into {table} failed: {e}", table=table) from e

    def _values(self, ctx: RunContext, table: str, column: str) -> List[Any]:
        ctx.check()
        try:
            cursor = self.db[table].find({}, {column: 1})
            return [doc.get(column) for doc in cursor]
        except PyMongoError as e:
            raise BackendIOError(f"Failed to read {table}.{column}: {e}", table=table) from e

    def primary_keys(self, ctx: RunContext, table: str) -> List[Any]:
        return self._values(ctx, table, self._primary_keys.get(table, "_id"))

    def foreign_key_values(self, ctx: RunContext, table: str, column: str) -> List[Any]:
        return self._values(ctx, table, column)

    def verify_integrity(self, ctx: RunContext, from_table: str, from_column: str,
                         to_table: str, to_column: str) -> bool:
        parents = set(self._values(ctx, from_table, from_column))
        children = self._values(ctx, to_table, to_column)
        return all(value is None or value in parents for value in children)

    def begin_transaction(self, ctx: RunContext) -> Transaction:
        ctx.check()
        try:
            return MongoTransaction(self.client)
        except PyMongoError as e:
            raise BackendIOError(f"Failed to begin transaction: {e}") from e

    def backup(self, ctx: RunContext, path: str) -> None:
        ctx.check()
        self._run_tool(ctx, ["mongodump", f"--db={self.config.database}", f"--archive={path}", "--gzip"])
        logger.info(f"Backed up MongoDB database to {path}")

    def restore(self, ctx: RunContext, path: str) -> None:
        ctx.check()
        if not os.path.exists(path):
            raise BackupError(f"Backup file {path} does not exist")
        self._run_tool(ctx, ["mongorestore", f"--archive={path}", "--gzip", "--drop"])
        logger.info(f"Restored MongoDB database from {path}")

    def _run_tool(self, ctx: RunContext, command: List[str]) -> None:
        """Run mongodump or mongorestore; the password goes through a --config file, never argv."""
        command = [command[0], f"--uri={self.config.mongo_uri(include_credentials=False)}"] + command[1:]
        if self.config.username:
            command.append(f"--username={self.config.username}")
            command.append(f"--authenticationDatabase={self.config.auth_source or 'admin'}")
        config_path = None
        if self.config.password:
            with tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False) as handle:
                yaml.safe_dump({"password": self.config.password}, handle)
                config_path = handle.name
            command.append(f"--config={config_path}")
        try:
            subprocess.run(command, capture_output=True, text=True, check=True, timeout=ctx.remaining())
        except subprocess.CalledProcessError as e:
            raise BackupError(f"{command[0]} failed: {e.stderr.strip() if e.stderr else e}") from e
        except (OSError, subprocess.TimeoutExpired) as e:
            raise BackupError(f"{command[0]} failed: {e}") from e
        finally:
            if config_path:
                os.remove(config_path)

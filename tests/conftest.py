"""Test configuration and fixtures for MockCraft tests."""

import pytest
import tempfile
import os
from datetime import datetime
from unittest.mock import Mock

from mockcraft.backends.sql import SQLBackend
from mockcraft.core.context import RunContext
from mockcraft.core.database import parse_database_url
from mockcraft.core.models import SeedConfig
from mockcraft.core.schema_loader import schema_from_dict
from mockcraft.generators.engine import GeneratorEngine


FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0)


def uuid_table(name, count, *extra_columns, **extra):
    """Table mapping with a uuid primary key and ``extra_columns`` as uuid references."""
    columns = [{"name": "id", "type": "uuid", "is_primary": True}]
    columns.extend({"name": column, "type": "uuid"} for column in extra_columns)
    columns.extend(extra.get("columns", []))
    return {"name": name, "count": count, "columns": columns, "data": extra.get("data", [])}


def relation(parent, parent_column, child, child_column, kind="one-to-many"):
    return {
        "type": kind,
        "from_table": parent,
        "from_column": parent_column,
        "to_table": child,
        "to_column": child_column,
    }


@pytest.fixture
def temp_db_file():
    """Create a temporary database file for SQLite testing."""
    fd, path = tempfile.mkstemp(suffix='.db')
    os.close(fd)
    yield path
    if os.path.exists(path):
        os.unlink(path)


@pytest.fixture
def sqlite_url(temp_db_file):
    return f"sqlite://{temp_db_file}"


@pytest.fixture
def ctx():
    return RunContext()


@pytest.fixture
def sqlite_backend(sqlite_url, ctx):
    """Connected SQLite backend on a temporary file."""
    backend = SQLBackend(parse_database_url(sqlite_url))
    backend.connect(ctx)
    yield backend
    backend.close()


@pytest.fixture
def engine():
    """Engine with a fixed seed and reference time."""
    return GeneratorEngine(seed=42, now=FIXED_NOW)


@pytest.fixture
def seed_config():
    return SeedConfig(seed=42, show_progress=False)


@pytest.fixture
def users_posts_schema():
    """Build a users/posts schema with the given row counts."""
    def build(users=2, posts=6):
        return schema_from_dict({
            "tables": [
                uuid_table("users", users, columns=[{"name": "name", "type": "string", "generator": "name"}]),
                uuid_table("posts", posts, "user_id", columns=[{"name": "title", "type": "string"}]),
            ],
            "relations": [relation("users", "id", "posts", "user_id")],
        })
    return build


@pytest.fixture
def shop_schema_dict():
    """A four-table schema with a two-level hierarchy and a many-to-many link."""
    return {
        "tables": [
            {
                "name": "order_items",
                "count": 20,
                "columns": [
                    {"name": "id", "type": "integer", "generator": "serial", "is_primary": True},
                    {"name": "order_id", "type": "integer"},
                    {"name": "product_id", "type": "integer"},
                    {"name": "quantity", "type": "integer", "params": {"min": 1, "max": 5}},
                ],
            },
            {
                "name": "orders",
                "count": 8,
                "columns": [
                    {"name": "id", "type": "integer", "generator": "serial", "is_primary": True},
                    {"name": "customer_id", "type": "integer"},
                    {"name": "status", "type": "string", "generator": "enum",
                     "values": ["pending", "shipped", "delivered"]},
                    {"name": "placed_at", "type": "datetime"},
                ],
            },
            {
                "name": "customers",
                "count": 4,
                "columns": [
                    {"name": "id", "type": "integer", "generator": "serial", "is_primary": True},
                    {"name": "email", "type": "varchar", "generator": "email", "params": {"max_length": 40}},
                    {"name": "active", "type": "boolean"},
                ],
                "indexes": [{"name": "idx_customers_email", "columns": ["email"]}],
            },
            {
                "name": "products",
                "count": 5,
                "columns": [
                    {"name": "id", "type": "integer", "generator": "serial", "is_primary": True},
                    {"name": "price", "type": "decimal", "generator": "price"},
                ],
            },
        ],
        "relations": [
            relation("customers", "id", "orders", "customer_id"),
            relation("orders", "id", "order_items", "order_id"),
            relation("products", "id", "order_items", "product_id", kind="many-to-many"),
        ],
    }


@pytest.fixture
def mock_backend():
    """Backend double that records calls and stores inserted rows."""
    backend = Mock()
    stored = {}

    def insert_batch(ctx, table, rows):
        stored.setdefault(table, []).extend(rows)
        return len(rows)

    backend.insert_batch.side_effect = insert_batch
    backend.verify_integrity.return_value = True
    backend.stored = stored
    return backend

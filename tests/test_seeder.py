"""Tests for the seed orchestrator, end to end on SQLite and against a mock backend."""

import logging
import uuid
from collections import Counter

import pytest

from mockcraft.core.context import RunContext
from mockcraft.core.errors import (
    BackendIOError, BackupError, CyclicSchemaError, FKCoverageInsufficientError, SeedCancelledError,
)
from mockcraft.core.models import SeedConfig
from mockcraft.core.schema_loader import schema_from_dict
from mockcraft.core.seeder import Seeder
from mockcraft.generators.engine import GeneratorEngine

from conftest import FIXED_NOW, relation, uuid_table


def seed(schema, backend, seed_value=42, **settings):
    config = SeedConfig(seed=seed_value, show_progress=False, **settings)
    engine = GeneratorEngine(seed=seed_value, now=FIXED_NOW)
    return Seeder(backend, engine, config).seed(schema)


class TestScenarios:
    """Seeding scenarios run against a real SQLite file."""

    def test_single_table_of_uuids(self, sqlite_backend, ctx):
        schema = schema_from_dict({"tables": [
            uuid_table("users", 3, columns=[{"name": "name", "type": "string"}]),
        ]})

        result = seed(schema, sqlite_backend)

        assert result.rows_inserted == {"users": 3}
        keys = sqlite_backend.primary_keys(ctx, "users")
        assert len(set(keys)) == 3
        assert all(isinstance(key, str) and uuid.UUID(key).version == 4 for key in keys)

    def test_children_split_evenly_over_parents(self, sqlite_backend, ctx, users_posts_schema):
        result = seed(users_posts_schema(users=2, posts=6), sqlite_backend)

        assert result.ok
        user_ids = sqlite_backend.primary_keys(ctx, "users")
        usage = Counter(sqlite_backend.foreign_key_values(ctx, "posts", "user_id"))
        assert set(usage) == set(user_ids)
        assert sorted(usage.values()) == [3, 3]

    def test_too_few_children_for_the_floor(self, sqlite_backend, ctx, users_posts_schema):
        result = seed(users_posts_schema(users=3, posts=5), sqlite_backend)

        assert result.rows_inserted["posts"] == 5
        usage = Counter(sqlite_backend.foreign_key_values(ctx, "posts", "user_id"))
        assert sorted(usage.values()) == [1, 2, 2]

    def test_two_table_cycle_is_deferred(self, sqlite_backend, ctx):
        schema = schema_from_dict({
            "tables": [uuid_table("a", 4, "b_id"), uuid_table("b", 3, "a_id")],
            "relations": [relation("a", "id", "b", "a_id"), relation("b", "id", "a", "b_id")],
        })

        result = seed(schema, sqlite_backend)

        assert result.deferred_tables == ["a", "b"]
        assert result.rows_inserted == {"a": 4, "b": 3}
        assert result.ok
        assert set(sqlite_backend.foreign_key_values(ctx, "a", "b_id")) <= set(
            sqlite_backend.primary_keys(ctx, "b"))
        assert set(sqlite_backend.foreign_key_values(ctx, "b", "a_id")) <= set(
            sqlite_backend.primary_keys(ctx, "a"))

    def test_empty_parent_leaves_children_unconstrained(self, sqlite_backend, caplog):
        schema = schema_from_dict({
            "tables": [uuid_table("parents", 0), uuid_table("children", 5, "parent_id")],
            "relations": [relation("parents", "id", "children", "parent_id")],
        })

        with caplog.at_level(logging.WARNING):
            result = seed(schema, sqlite_backend)

        assert "No primary keys available for balanced distribution in table children" in caplog.text
        assert result.rows_inserted == {"parents": 0, "children": 5}
        assert not result.ok
        report = result.integrity[0]
        assert report.violations == 5
        assert len(report.offenders) == 5
        assert any("Referential integrity violation" in w for w in result.warnings)

    def test_too_few_relationships(self, sqlite_backend):
        schema = schema_from_dict({
            "tables": [uuid_table("users", 2), uuid_table("posts", 4, "user_id", "editor_id")],
            "relations": [
                relation("users", "id", "posts", "user_id"),
                relation("users", "id", "posts", "editor_id"),
            ],
        })

        with pytest.raises(FKCoverageInsufficientError) as exc_info:
            seed(schema, sqlite_backend, min_relationships=3)

        assert "found 2, minimum 3" in str(exc_info.value)
        assert exc_info.value.kind == "fk_coverage_insufficient"


class TestSeederOnSQLite:
    """Ordering, integrity and repeatability on a multi-level schema."""

    def test_parents_before_children(self, sqlite_backend, shop_schema_dict):
        result = seed(schema_from_dict(shop_schema_dict), sqlite_backend)

        order = result.insertion_order
        assert order == ["customers", "orders", "products", "order_items"]
        assert result.ok
        assert result.total_rows == 4 + 8 + 5 + 20

    def test_every_parent_gets_the_floor(self, sqlite_backend, ctx, shop_schema_dict):
        seed(schema_from_dict(shop_schema_dict), sqlite_backend)

        usage = Counter(sqlite_backend.foreign_key_values(ctx, "order_items", "order_id"))
        assert set(usage) == set(sqlite_backend.primary_keys(ctx, "orders"))
        assert min(usage.values()) >= 2

    def test_serial_keys_count_per_table(self, sqlite_backend, ctx, shop_schema_dict):
        seed(schema_from_dict(shop_schema_dict), sqlite_backend)

        assert sorted(sqlite_backend.primary_keys(ctx, "customers")) == [1, 2, 3, 4]
        assert sorted(sqlite_backend.primary_keys(ctx, "products")) == [1, 2, 3, 4, 5]

    def test_varchar_values_are_truncated(self, sqlite_backend, ctx, shop_schema_dict):
        seed(schema_from_dict(shop_schema_dict), sqlite_backend)

        emails = sqlite_backend.foreign_key_values(ctx, "customers", "email")
        assert emails and all(len(email) <= 40 for email in emails)

    def test_reseed_is_idempotent(self, sqlite_backend, ctx, shop_schema_dict):
        seed(schema_from_dict(shop_schema_dict), sqlite_backend)
        first = sqlite_backend.foreign_key_values(ctx, "order_items", "product_id")

        seed(schema_from_dict(shop_schema_dict), sqlite_backend)
        second = sqlite_backend.foreign_key_values(ctx, "order_items", "product_id")

        assert len(second) == 20
        assert first == second

    def test_self_reference_points_inside_the_table(self, sqlite_backend, ctx):
        schema = schema_from_dict({
            "tables": [uuid_table("employees", 6, "manager_id")],
            "relations": [relation("employees", "id", "employees", "manager_id")],
        })

        result = seed(schema, sqlite_backend)

        assert result.deferred_tables == ["employees"]
        ids = set(sqlite_backend.primary_keys(ctx, "employees"))
        assert set(sqlite_backend.foreign_key_values(ctx, "employees", "manager_id")) <= ids
        assert result.ok

    @pytest.mark.parametrize("count, seed_value", [(2, 1), (6, 42), (6, 7), (13, 3)])
    def test_self_reference_never_points_at_own_row(self, count, seed_value):
        schema = schema_from_dict({
            "tables": [uuid_table("employees", count, "manager_id")],
            "relations": [relation("employees", "id", "employees", "manager_id")],
        })

        rows = seed(schema, None, seed_value=seed_value, dry_run=True).data["employees"]

        ids = {row["id"] for row in rows}
        assert len(ids) == count
        assert all(row["manager_id"] in ids for row in rows)
        assert all(row["manager_id"] != row["id"] for row in rows)

    def test_predefined_rows_feed_children(self, sqlite_backend, ctx):
        schema = schema_from_dict({
            "tables": [
                {"name": "roles", "count": 0,
                 "columns": [{"name": "code", "type": "string", "is_primary": True}],
                 "data": [{"code": "admin"}, {"code": "editor"}]},
                uuid_table("accounts", 4, columns=[{"name": "role", "type": "string"}]),
            ],
            "relations": [relation("roles", "code", "accounts", "role")],
        })

        result = seed(schema, sqlite_backend)

        assert result.rows_inserted["roles"] == 2
        assert Counter(sqlite_backend.foreign_key_values(ctx, "accounts", "role")) == {"admin": 2, "editor": 2}


class TestSeederBehaviour:
    """Orchestration details checked against a mock backend."""

    def test_dry_run_never_touches_the_backend(self, mock_backend, users_posts_schema):
        result = seed(users_posts_schema(users=2, posts=4), mock_backend, dry_run=True)

        assert mock_backend.method_calls == []
        assert len(result.data["users"]) == 2
        assert len(result.data["posts"]) == 4
        assert result.integrity == []

    def test_dry_run_without_backend(self, users_posts_schema):
        result = seed(users_posts_schema(), None, dry_run=True)
        assert result.rows_inserted == {"users": 2, "posts": 6}

    def test_same_seed_same_rows(self, users_posts_schema):
        first = seed(users_posts_schema(), None, dry_run=True)
        second = seed(users_posts_schema(), None, dry_run=True)
        other = seed(users_posts_schema(), None, seed_value=7, dry_run=True)

        assert first.data == second.data
        assert first.data != other.data

    def test_count_override_skips_empty_tables(self, users_posts_schema):
        schema = users_posts_schema()
        schema.get_table("users").count = 0

        result = seed(schema, None, dry_run=True, count_override=9)

        assert result.rows_inserted == {"users": 0, "posts": 9}

    def test_batches_are_inserted_in_order(self, mock_backend, users_posts_schema):
        seed(users_posts_schema(users=2, posts=10), mock_backend, batch_size=4)

        sizes = [len(c.args[2]) for c in mock_backend.insert_batch.call_args_list if c.args[1] == "posts"]
        assert sizes == [4, 4, 2]
        assert len(mock_backend.stored["posts"]) == 10

    def test_failed_chunk_aborts_the_run(self, mock_backend, users_posts_schema):
        calls = []

        def insert_batch(ctx, table, rows):
            calls.append(table)
            if table == "posts" and calls.count("posts") == 2:
                raise BackendIOError("disk full", table=table)
            return len(rows)

        mock_backend.insert_batch.side_effect = insert_batch

        with pytest.raises(BackendIOError) as exc_info:
            seed(users_posts_schema(users=2, posts=10), mock_backend, batch_size=4)

        assert "Chunk 2/3 of table posts" in str(exc_info.value)
        assert exc_info.value.table == "posts"
        assert isinstance(exc_info.value.__cause__, BackendIOError)
        mock_backend.verify_integrity.assert_not_called()

    def test_tables_dropped_in_reverse_order(self, mock_backend, users_posts_schema):
        seed(users_posts_schema(), mock_backend)

        dropped = [c.args[1] for c in mock_backend.drop_table.call_args_list]
        assert dropped == ["posts", "users"]

    def test_no_drop_keeps_tables(self, mock_backend, users_posts_schema):
        seed(users_posts_schema(), mock_backend, drop_existing=False)
        mock_backend.drop_table.assert_not_called()

    def test_backup_failure_is_a_warning(self, mock_backend, users_posts_schema, caplog):
        mock_backend.backup.side_effect = BackupError("pg_dump not found")

        with caplog.at_level(logging.WARNING):
            result = seed(users_posts_schema(), mock_backend, backup_path="/tmp/before.dump")

        assert "Backup failed" in caplog.text
        assert result.warnings == ["Backup failed, continuing without one: pg_dump not found"]
        assert result.rows_inserted["posts"] == 6

    def test_cycle_between_deferred_tables_has_no_constraint(self, mock_backend):
        schema = schema_from_dict({
            "tables": [uuid_table("a", 2, "b_id"), uuid_table("b", 2, "a_id")],
            "relations": [relation("a", "id", "b", "a_id"), relation("b", "id", "a", "b_id")],
        })

        seed(schema, mock_backend)

        for c in mock_backend.create_table.call_args_list:
            assert c.args[3] == []

    def test_strict_cycles(self, mock_backend):
        schema = schema_from_dict({
            "tables": [uuid_table("a", 2, "b_id"), uuid_table("b", 2, "a_id")],
            "relations": [relation("a", "id", "b", "a_id"), relation("b", "id", "a", "b_id")],
        })

        with pytest.raises(CyclicSchemaError):
            seed(schema, mock_backend, strict_cycles=True)
        mock_backend.insert_batch.assert_not_called()

    def test_cancelled_run_stops(self, mock_backend, users_posts_schema, engine, seed_config):
        ctx = RunContext()
        ctx.cancel()

        with pytest.raises(SeedCancelledError):
            Seeder(mock_backend, engine, seed_config).seed(users_posts_schema(), ctx)
        mock_backend.insert_batch.assert_not_called()

    def test_integrity_report_samples_offenders(self, mock_backend, users_posts_schema):
        mock_backend.verify_integrity.return_value = False
        mock_backend.primary_keys.return_value = ["u1"]
        mock_backend.foreign_key_values.return_value = ["u1", "x", "x", "y", None, "z"]

        result = seed(users_posts_schema(), mock_backend, integrity_sample_size=2)

        report = result.integrity[0]
        assert report.violations == 4
        assert report.offenders == ["x", "y"]
        assert not result.ok

    def test_parallel_generation_is_repeatable(self, users_posts_schema):
        settings = dict(dry_run=True, max_workers=3, batch_size=10)
        first = seed(users_posts_schema(users=4, posts=35), None, **settings)
        second = seed(users_posts_schema(users=4, posts=35), None, **settings)

        assert first.data == second.data
        assert len(first.data["posts"]) == 35
        usage = Counter(row["user_id"] for row in first.data["posts"])
        assert min(usage.values()) >= 2

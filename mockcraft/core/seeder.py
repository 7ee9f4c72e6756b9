"""Seed orchestration: validate, order, generate, insert and verify."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Tuple, Union

from tqdm import tqdm

from .context import RunContext
from .dependency_resolver import DependencyResolver, InsertionPlan
from .distribution import DistributionPlanner, ForeignKeyRef
from .errors import BackendIOError, BackupError
from .models import IntegrityReport, Schema, SeedConfig, SeedResult, Table
from .schema_loader import load_schema
from .validator import SchemaValidator

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
KeyRegistry = Dict[Tuple[str, str], List[Any]]


class Seeder:
    """Drives one seed run against a backend.

    Tables are filled in dependency order. Parent key values are recorded
    after each insert so children can reference them through the
    distribution planner. Tables in reference cycles, and the tables that
    depend on them, are generated last: first every deferred table gets its
    rows, then their references are filled from the complete key set, then
    they are inserted.
    """

    def __init__(self, backend, engine, config: Optional[SeedConfig] = None):
        self.backend = backend
        self.engine = engine
        self.config = config or SeedConfig()
        self.planner = DistributionPlanner(
            engine.random,
            min_per_parent=self.config.min_per_parent,
            secondary_policy=self.config.secondary_fk_policy,
        )

    def seed_file(self, path: Union[str, Path], ctx: Optional[RunContext] = None) -> SeedResult:
        """Load a schema file and seed it."""
        return self.seed(load_schema(path), ctx)

    def seed(self, schema: Schema, ctx: Optional[RunContext] = None) -> SeedResult:
        """Run the whole seed sequence for ``schema``."""
        ctx = ctx or RunContext(timeout=self.config.timeout_seconds)
        start_time = time.time()

        SchemaValidator(self.engine, self.config.min_relationships).validate(schema)
        self._apply_count_override(schema)
        plan = DependencyResolver(schema).create_insertion_plan(strict_cycles=self.config.strict_cycles)
        deferred = self._deferred_tables(plan)

        result = SeedResult(insertion_order=list(plan.insertion_order), deferred_tables=deferred)
        logger.info(f"Insertion order: {' -> '.join(plan.insertion_order)}")

        if not self.config.dry_run:
            self._backup(ctx, result)
            if self.config.drop_existing:
                self._drop_tables(ctx, schema)

        keys: KeyRegistry = {}
        pending: List[Table] = []
        for name in plan.insertion_order:
            ctx.check()
            table = schema.get_table(name)
            self._create_structure(ctx, schema, table, deferred)
            if name in deferred:
                logger.info(f"Deferring {name} until all other tables are filled")
                pending.append(table)
                continue
            rows = self._generate_table(ctx, schema, table, keys)
            self._insert(ctx, table, rows, result)
            self._record_keys(schema, table, rows, keys)

        if pending:
            self._seed_deferred(ctx, schema, pending, keys, result)

        if self.config.verify and not self.config.dry_run:
            result.integrity = self._verify(ctx, schema, result)

        result.total_time_seconds = time.time() - start_time
        logger.info(f"Seeded {result.total_rows} rows into {len(result.rows_inserted)} tables "
                    f"in {result.total_time_seconds:.2f} seconds")
        return result

    def _apply_count_override(self, schema: Schema) -> None:
        if self.config.count_override is None:
            return
        for table in schema.tables:
            if table.count > 0:
                table.count = self.config.count_override

    @staticmethod
    def _deferred_tables(plan: InsertionPlan) -> List[str]:
        """Circular tables plus everything that depends on one."""
        deferred = set(plan.circular_tables)
        for name in plan.insertion_order:
            if any(parent in deferred for parent in plan.dependency_graph.get(name, [])):
                deferred.add(name)
        return [name for name in plan.insertion_order if name in deferred]

    def _backup(self, ctx: RunContext, result: SeedResult) -> None:
        if not self.config.backup_path:
            return
        try:
            self.backend.backup(ctx, self.config.backup_path)
        except BackupError as e:
            message = f"Backup failed, continuing without one: {e}"
            logger.warning(message)
            result.warnings.append(message)

    def _drop_tables(self, ctx: RunContext, schema: Schema) -> None:
        for table in reversed(schema.tables):
            ctx.check()
            self.backend.drop_table(ctx, table.name)

    def _create_structure(self, ctx: RunContext, schema: Schema, table: Table, deferred: List[str]) -> None:
        if self.config.dry_run:
            return
        # References between deferred tables cannot be enforced at insert time
        relationships = [
            rel for rel in schema.relations_into(table.name)
            if not (table.name in deferred and rel.from_table in deferred)
        ]
        self.backend.create_table(ctx, table.name, table, relationships)
        for index in table.indexes:
            self.backend.create_index(ctx, table.name, index)

    @staticmethod
    def _foreign_key_refs(schema: Schema, table: Table) -> List[ForeignKeyRef]:
        """References held by ``table``, in column order; the first one is balanced."""
        position = {column.name: i for i, column in enumerate(table.columns)}
        refs: Dict[str, ForeignKeyRef] = {}
        for rel in schema.relations_into(table.name):
            refs.setdefault(rel.to_column, ForeignKeyRef(rel.to_column, rel.from_table, rel.from_column))
        return sorted(refs.values(), key=lambda ref: position[ref.column])

    @staticmethod
    def _referenced_columns(schema: Schema, table: Table) -> List[str]:
        columns = [table.primary_key.name] if table.primary_key else []
        for rel in schema.relations:
            if rel.from_table == table.name and rel.from_column not in columns:
                columns.append(rel.from_column)
        return columns

    def _record_keys(self, schema: Schema, table: Table, rows: List[Row], keys: KeyRegistry) -> None:
        for column in self._referenced_columns(schema, table):
            keys[(table.name, column)] = [row[column] for row in rows if row.get(column) is not None]

    def _generate_table(self, ctx: RunContext, schema: Schema, table: Table, keys: KeyRegistry) -> List[Row]:
        if table.count == 0:
            if table.data:
                logger.info(f"Using {len(table.data)} predefined rows for {table.name}")
            return [dict(row) for row in table.data]

        refs = self._foreign_key_refs(schema, table)
        assignments = None
        if refs:
            snapshot = MappingProxyType({k: tuple(v) for k, v in keys.items()})
            assignments = self.planner.assign(table.name, table.count, refs, snapshot)
        logger.info(f"Generating {table.count} rows for table: {table.name}")
        return self._generate_rows(ctx, table, assignments)

    def _generate_rows(self, ctx: RunContext, table: Table, assignments: Optional[List[Row]]) -> List[Row]:
        count = table.count
        chunk_size = self.config.batch_size
        if self.config.max_workers <= 1 or count <= chunk_size:
            return self._generate_chunk(ctx, table, self.engine, 0, count, assignments)

        # Each chunk draws from its own child engine so output does not depend on scheduling
        starts = list(range(0, count, chunk_size))
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            futures = [
                pool.submit(
                    self._generate_chunk, ctx, table,
                    self.engine.spawn(f"{table.name}:{start}", sequence_offset=start),
                    start, min(start + chunk_size, count), assignments,
                )
                for start in starts
            ]
            rows: List[Row] = []
            for future in futures:
                rows.extend(future.result())
        return rows

    @staticmethod
    def _generate_chunk(ctx: RunContext, table: Table, engine, start: int, end: int,
                        assignments: Optional[List[Row]]) -> List[Row]:
        rows = []
        for i in range(start, end):
            # Check for cancellation every 100 rows
            if (i - start) % 100 == 0:
                ctx.check()
            inherited = assignments[i] if assignments else None
            rows.append(engine.generate_row(table.columns, inherited, scope=table.name))
        return rows

    def _insert(self, ctx: RunContext, table: Table, rows: List[Row], result: SeedResult) -> None:
        """Insert ``rows`` in ordered chunks; any failing chunk aborts the run."""
        if self.config.dry_run:
            result.data[table.name] = rows
            result.rows_inserted[table.name] = len(rows)
            return
        if not rows:
            result.rows_inserted[table.name] = 0
            return

        batch_size = self.config.batch_size
        batches = [rows[i:i + batch_size] for i in range(0, len(rows), batch_size)]
        total_inserted = 0

        with tqdm(total=len(rows), desc=f"Inserting {table.name}",
                  disable=not self.config.show_progress) as pbar:
            for number, batch in enumerate(batches, 1):
                ctx.check()
                try:
                    total_inserted += self.backend.insert_batch(ctx, table.name, batch)
                except BackendIOError as e:
                    raise BackendIOError(
                        f"Chunk {number}/{len(batches)} of table {table.name} failed: {e}",
                        table=table.name,
                    ) from e
                pbar.update(len(batch))
                logger.debug(f"Batch {number}/{len(batches)} completed: {len(batch)} rows")

        result.rows_inserted[table.name] = total_inserted
        logger.info(f"Inserted {total_inserted} rows into {table.name}")

    def _seed_deferred(self, ctx: RunContext, schema: Schema, tables: List[Table],
                       keys: KeyRegistry, result: SeedResult) -> None:
        generated: Dict[str, List[Row]] = {}
        for table in tables:
            ctx.check()
            if table.count == 0:
                generated[table.name] = [dict(row) for row in table.data]
            else:
                logger.info(f"Generating {table.count} rows for deferred table: {table.name}")
                generated[table.name] = self._generate_rows(ctx, table, None)
            self._record_keys(schema, table, generated[table.name], keys)

        # Every deferred table now has keys, so references can be filled in
        for table in tables:
            refs = self._foreign_key_refs(schema, table)
            rows = generated[table.name]
            if not refs or table.count == 0:
                continue
            snapshot = MappingProxyType({k: tuple(v) for k, v in keys.items()})
            for row, assigned in zip(rows, self.planner.assign(table.name, len(rows), refs, snapshot)):
                row.update(assigned)
            self._spread_self_references(table, refs, rows)
            self._record_keys(schema, table, rows, keys)

        for table in tables:
            self._insert(ctx, table, generated[table.name], result)

    def _spread_self_references(self, table: Table, refs: List[ForeignKeyRef], rows: List[Row]) -> None:
        """Shuffle references into the table itself so no row points at its own key.

        The planned multiset of values is kept. A row can only end up pointing
        at itself when the table holds a single key.
        """
        primary = table.primary_key
        if primary is None or len(rows) < 2:
            return
        for ref in refs:
            if ref.parent_table != table.name or ref.parent_column != primary.name:
                continue
            values = [row.get(ref.column) for row in rows]
            self.planner.rng.shuffle(values)
            own = [row.get(primary.name) for row in rows]
            for i, value in enumerate(values):
                if value is None or value != own[i]:
                    continue
                for j in range(len(values)):
                    if values[j] != own[i] and values[i] != own[j]:
                        values[i], values[j] = values[j], values[i]
                        break
            for row, value in zip(rows, values):
                row[ref.column] = value

    def _verify(self, ctx: RunContext, schema: Schema, result: SeedResult) -> List[IntegrityReport]:
        """Check every relationship and warn about child values with no parent."""
        logger.info("Verifying referential integrity")
        reports = []
        sample_size = self.config.integrity_sample_size
        for rel in schema.relations:
            ctx.check()
            report = IntegrityReport(relationship=rel)
            reports.append(report)
            if self.backend.verify_integrity(ctx, rel.from_table, rel.from_column,
                                             rel.to_table, rel.to_column):
                continue

            parent_table = schema.get_table(rel.from_table)
            if parent_table.primary_key and parent_table.primary_key.name == rel.from_column:
                parents = set(self.backend.primary_keys(ctx, rel.from_table))
            else:
                parents = set(self.backend.foreign_key_values(ctx, rel.from_table, rel.from_column))
            missing = [v for v in self.backend.foreign_key_values(ctx, rel.to_table, rel.to_column)
                       if v is not None and v not in parents]

            report.violations = len(missing)
            for value in missing:
                if len(report.offenders) >= sample_size:
                    break
                if value not in report.offenders:
                    report.offenders.append(value)

            message = (f"Referential integrity violation {rel.describe()}: {report.violations} rows "
                       f"reference missing keys, e.g. {report.offenders}")
            logger.warning(message)
            result.warnings.append(message)
        return reports

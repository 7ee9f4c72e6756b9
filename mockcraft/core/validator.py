"""Schema validation and enhancement."""

import logging
from typing import List, Optional

from .errors import FKCoverageInsufficientError, GeneratorError, SchemaInvalidError
from .models import (
    Column, ConstraintType, RelationshipType, Schema, Table, default_generator,
)

logger = logging.getLogger(__name__)

# Threshold used when the minimum-relationship check is switched on without a value
DEFAULT_MIN_RELATIONSHIPS = 3


class SchemaValidator:
    """Validates a schema and fills in defaults in place.

    Structural problems in tables, columns and indexes are collected and
    reported together. Invalid relationships are logged one by one and then
    fail the validation as a group.
    """

    def __init__(self, engine, min_relationships: Optional[int] = None):
        self.engine = engine
        self.min_relationships = min_relationships
        # Probes draw from a throwaway child so validation never shifts the seeded sequence
        self._probe_engine = engine.spawn("validate")

    def validate(self, schema: Schema) -> Schema:
        """Validate ``schema``, enhance it in place and return it."""
        problems: List[str] = []
        seen_tables = set()

        if not schema.tables:
            problems.append("schema declares no tables")

        for table in schema.tables:
            if table.name and table.name in seen_tables:
                problems.append(f"duplicate table name '{table.name}'")
            seen_tables.add(table.name)
            problems.extend(self._validate_table(table))

        problems.extend(self._validate_constraints(schema))

        if problems:
            raise SchemaInvalidError("Schema validation failed", problems)

        self._validate_relationships(schema)
        logger.info(
            f"Schema validated: {len(schema.tables)} tables, {len(schema.relations)} relationships"
        )
        return schema

    def _validate_table(self, table: Table) -> List[str]:
        problems = []
        label = table.name or "<unnamed>"
        if not table.name:
            problems.append("table with empty name")
        if isinstance(table.count, bool) or not isinstance(table.count, int) or table.count < 0:
            problems.append(f"table '{label}': count must be a non-negative integer, got {table.count!r}")
        if not table.columns:
            problems.append(f"table '{label}': must have at least one column")

        names = set()
        primaries = 0
        for column in table.columns:
            if column.name in names:
                problems.append(f"table '{label}': duplicate column '{column.name}'")
            names.add(column.name)
            primaries += column.is_primary
            problems.extend(f"table '{label}': {p}" for p in self._validate_column(column))
        if primaries > 1:
            problems.append(f"table '{label}': only one column may be primary")

        for index in table.indexes:
            if not index.name:
                problems.append(f"table '{label}': index with empty name")
            if not index.columns:
                problems.append(f"table '{label}': index '{index.name}' has no columns")
            for column_name in index.columns:
                if table.get_column(column_name) is None:
                    problems.append(
                        f"table '{label}': index '{index.name}' references unknown column '{column_name}'"
                    )
        return problems

    def _validate_column(self, column: Column) -> List[str]:
        """Fill column defaults, then check the generator resolves and can produce a value."""
        if not column.name:
            return ["column with empty name"]
        if not column.type:
            return [f"column '{column.name}': type is required"]

        column.industry = column.industry or "base"
        if not column.generator:
            column.generator, defaults = default_generator(column.type)
            column.params = {**defaults, **column.params}
        if column.generator == "enum" and column.values is not None:
            column.params["values"] = list(column.values)
        if column.nested_fields:
            for nested in column.nested_fields:
                nested_problems = self._validate_column(nested)
                if nested_problems:
                    return [f"column '{column.name}': {p}" for p in nested_problems]
            column.params["fields"] = column.nested_fields
        if column.subtype and "subtype" not in column.params:
            column.params["subtype"] = column.subtype

        if not self.engine.validate(column.industry, column.generator):
            return [f"column '{column.name}': unknown generator "
                    f"'{column.generator}' in industry '{column.industry}'"]
        try:
            self._probe_engine.generate(column.industry, column.generator, column.params)
        except GeneratorError as e:
            return [f"column '{column.name}': {e}"]
        return []

    def _validate_constraints(self, schema: Schema) -> List[str]:
        problems = []
        kinds = [kind.value for kind in ConstraintType]
        for constraint in schema.constraints:
            if constraint.type not in kinds:
                problems.append(f"constraint type '{constraint.type}' is not one of {', '.join(kinds)}")
            for column_name in constraint.columns:
                if not any(t.get_column(column_name) for t in schema.tables):
                    problems.append(f"constraint references unknown column '{column_name}'")
        return problems

    def _validate_relationships(self, schema: Schema) -> None:
        invalid = []
        for rel in schema.relations:
            problem = self._relationship_problem(schema, rel)
            if problem:
                logger.error(f"Invalid relationship {rel.describe()}: {problem}")
                invalid.append(f"{rel.describe()}: {problem}")

        if invalid:
            raise SchemaInvalidError(
                f"schema has {len(invalid)} invalid foreign key relationships", invalid
            )

        valid = len(schema.relations)
        if schema.relations and self.min_relationships and valid < self.min_relationships:
            raise FKCoverageInsufficientError(valid, self.min_relationships)

    def _relationship_problem(self, schema: Schema, rel) -> Optional[str]:
        if not all([rel.type, rel.from_table, rel.from_column, rel.to_table, rel.to_column]):
            return "all of type, from_table, from_column, to_table, to_column are required"
        kinds = [kind.value for kind in RelationshipType]
        if rel.type not in kinds:
            return f"type must be one of {', '.join(kinds)}"
        parent = schema.get_table(rel.from_table)
        child = schema.get_table(rel.to_table)
        if parent is None:
            return f"table '{rel.from_table}' does not exist"
        if child is None:
            return f"table '{rel.to_table}' does not exist"
        if parent.get_column(rel.from_column) is None:
            return f"column '{rel.from_table}.{rel.from_column}' does not exist"
        if parent.primary_key is None:
            return f"table '{rel.from_table}' has no primary key and cannot be referenced"
        child_column = child.get_column(rel.to_column)
        if child_column is None:
            return f"column '{rel.to_table}.{rel.to_column}' does not exist"
        if child_column.is_primary and rel.type != RelationshipType.ONE_TO_ONE.value:
            return "the referencing column is primary; only one-to-one relationships allow that"
        return None

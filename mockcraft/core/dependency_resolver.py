"""Dependency resolution for table insertion ordering."""

import heapq
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from .errors import CyclicSchemaError
from .models import Schema

logger = logging.getLogger(__name__)


@dataclass
class TableDependency:
    """A child table's reference to one parent table."""
    table: str
    depends_on: str
    foreign_key_column: str
    referenced_column: str


@dataclass
class InsertionPlan:
    """Plan for creating and filling tables in dependency order."""
    insertion_order: List[str]
    dependency_graph: Dict[str, List[str]]
    circular_tables: List[str] = field(default_factory=list)
    self_referencing_tables: List[str] = field(default_factory=list)
    independent_tables: List[str] = field(default_factory=list)

    def get_insertion_batches(self) -> List[List[str]]:
        """Group acyclic tables into levels whose members could be filled in parallel."""
        batches: List[List[str]] = []
        done: Set[str] = set()
        remaining = [t for t in self.insertion_order if t not in self.circular_tables]

        while remaining:
            batch = [t for t in remaining if set(self.dependency_graph.get(t, [])) <= done]
            if not batch:
                break
            batches.append(batch)
            done.update(batch)
            remaining = [t for t in remaining if t not in done]

        if self.circular_tables:
            batches.append(list(self.circular_tables))
        return batches


class DependencyResolver:
    """Orders tables so every parent is filled before its children.

    Edges run parent (``from``) to child (``to``). Self references are left out
    of the graph and reported as circular, as are tables caught in
    multi-table cycles.
    """

    def __init__(self, schema: Schema):
        self.schema = schema
        self.dependencies: Dict[str, List[TableDependency]] = defaultdict(list)
        self.reverse_dependencies: Dict[str, List[str]] = defaultdict(list)
        self.self_references: List[str] = []
        self._build_dependency_graph()

    def _build_dependency_graph(self):
        """Build the dependency graph from the schema's relationships."""
        for rel in self.schema.relations:
            if rel.is_self_reference:
                if rel.to_table not in self.self_references:
                    self.self_references.append(rel.to_table)
                continue
            self.dependencies[rel.to_table].append(TableDependency(
                table=rel.to_table,
                depends_on=rel.from_table,
                foreign_key_column=rel.to_column,
                referenced_column=rel.from_column,
            ))
            if rel.to_table not in self.reverse_dependencies[rel.from_table]:
                self.reverse_dependencies[rel.from_table].append(rel.to_table)

    def get_dependency_graph(self) -> Dict[str, List[str]]:
        """Get table -> distinct parent tables."""
        graph = {}
        for table in self.schema.tables:
            parents = []
            for dep in self.dependencies[table.name]:
                if dep.depends_on not in parents:
                    parents.append(dep.depends_on)
            graph[table.name] = parents
        return graph

    def _kahn(self) -> Tuple[List[str], List[str]]:
        """Kahn's algorithm; ready tables are taken in schema order.

        Returns the resolved order and the tables left unresolved by cycles.
        """
        position = {name: i for i, name in enumerate(self.schema.table_names())}
        graph = self.get_dependency_graph()
        in_degree = {name: len(parents) for name, parents in graph.items()}

        ready = [position[name] for name, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)
        names = self.schema.table_names()
        order: List[str] = []

        while ready:
            table = names[heapq.heappop(ready)]
            order.append(table)
            for child in self.reverse_dependencies[table]:
                in_degree[child] -= 1
                if in_degree[child] == 0:
                    heapq.heappush(ready, position[child])

        unresolved = [name for name in names if name not in set(order)]
        return order, unresolved

    def topological_sort(self) -> List[str]:
        """Return the insertion order or raise when a cycle prevents one."""
        order, unresolved = self._kahn()
        if unresolved:
            raise CyclicSchemaError(unresolved)
        return order

    def create_insertion_plan(self, strict_cycles: bool = False) -> InsertionPlan:
        """Create a complete insertion plan.

        Tables left unresolved by a cycle are appended in schema order and
        marked circular, unless ``strict_cycles`` is set.
        """
        dependency_graph = self.get_dependency_graph()
        order, unresolved = self._kahn()

        if unresolved:
            if strict_cycles:
                raise CyclicSchemaError(unresolved)
            logger.warning(f"Circular dependencies detected in tables: {', '.join(unresolved)}")

        circular = [name for name in self.schema.table_names()
                    if name in unresolved or name in self.self_references]

        independent_tables = [
            table for table, deps in dependency_graph.items()
            if not deps and table not in self.self_references
        ]

        return InsertionPlan(
            insertion_order=order + unresolved,
            dependency_graph=dependency_graph,
            circular_tables=circular,
            self_referencing_tables=list(self.self_references),
            independent_tables=independent_tables,
        )

    def get_table_dependencies(self, table_name: str) -> List[TableDependency]:
        """Get all dependencies for a specific table."""
        return self.dependencies[table_name]

    def get_dependent_tables(self, table_name: str) -> List[str]:
        """Get tables that depend on the given table."""
        return self.reverse_dependencies[table_name]

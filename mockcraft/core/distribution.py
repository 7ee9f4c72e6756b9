"""Balanced assignment of parent keys to child rows."""

import logging
import random
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

KeySnapshot = Mapping[Tuple[str, str], Sequence[Any]]


@dataclass
class ForeignKeyRef:
    """A child column pointing at a parent table's key column."""
    column: str
    parent_table: str
    parent_column: str


class DistributionPlanner:
    """Spreads child rows over parent keys.

    Every parent receives ``min_per_parent`` rows when there are enough rows to
    go round; the rest go to the least used parents, ties broken at random.
    With too few rows the split is as even as possible, remainder first.
    """

    def __init__(self, rng: random.Random, min_per_parent: int = 2, secondary_policy: str = "random"):
        if secondary_policy not in ("random", "balanced"):
            raise ValueError(f"Unsupported secondary policy: {secondary_policy}")
        self.rng = rng
        self.min_per_parent = min_per_parent
        self.secondary_policy = secondary_policy

    def plan(self, row_count: int, parent_keys: Sequence[Any]) -> Optional[List[Any]]:
        """Return one parent key per row, or None when there are no parents."""
        parents = len(parent_keys)
        if parents == 0:
            return None
        if row_count <= 0:
            return []

        guaranteed = parents * self.min_per_parent
        if self.min_per_parent > 0 and row_count >= guaranteed:
            assignment = [key for key in parent_keys for _ in range(self.min_per_parent)]
            remaining = row_count - guaranteed
            # Least-used-first: all parents are tied at the start of each round,
            # so a round is a random permutation of the parents
            while remaining > 0:
                round_keys = list(parent_keys)
                self.rng.shuffle(round_keys)
                assignment.extend(round_keys[:remaining])
                remaining -= len(round_keys[:remaining])
            return assignment

        per_parent, extra = divmod(row_count, parents)
        assignment = []
        for i, key in enumerate(parent_keys):
            assignment.extend([key] * (per_parent + (1 if i < extra else 0)))
        return assignment

    def assign(self, table_name: str, row_count: int, references: List[ForeignKeyRef],
               keys: KeySnapshot) -> List[Dict[str, Any]]:
        """Return per-row ``{column: parent key}`` for every reference that has parent keys.

        The first reference is balanced; the others are picked uniformly
        unless the secondary policy is ``balanced``. References whose parent
        has no keys are left out, so the column falls back to its generator.
        """
        assignments: List[Dict[str, Any]] = [{} for _ in range(row_count)]
        for position, ref in enumerate(references):
            parent_keys = keys.get((ref.parent_table, ref.parent_column), ())
            if not parent_keys:
                if position == 0:
                    logger.warning(
                        f"No primary keys available for balanced distribution in table {table_name}"
                    )
                else:
                    logger.warning(
                        f"No keys in {ref.parent_table}.{ref.parent_column} for "
                        f"{table_name}.{ref.column}; using its generator"
                    )
                continue

            if position == 0 or self.secondary_policy == "balanced":
                values = self.plan(row_count, parent_keys)
            else:
                values = [self.rng.choice(parent_keys) for _ in range(row_count)]

            for row, value in zip(assignments, values):
                row[ref.column] = value

            if position == 0:
                self._log_summary(table_name, ref, values)
        return assignments

    def _log_summary(self, table_name: str, ref: ForeignKeyRef, values: List[Any]) -> None:
        usage = usage_summary(values)
        if not usage:
            return
        logger.debug(
            f"Distribution for {table_name}.{ref.column} over {len(usage)} "
            f"{ref.parent_table} keys: min {min(usage.values())}, max {max(usage.values())}"
        )


def usage_summary(values: Sequence[Any]) -> Counter:
    """Count how many rows each parent key received."""
    return Counter(values)

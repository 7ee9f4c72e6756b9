"""Data models for schema representation, seed configuration and run results."""

from typing import List, Dict, Any, Optional
from enum import Enum
from dataclasses import dataclass, field
from pydantic import BaseModel, Field, field_validator


class RelationshipType(Enum):
    """Cardinality of a relationship."""
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_MANY = "many-to-many"


class ConstraintType(Enum):
    """Kinds of extra constraints a schema may declare."""
    UNIQUE = "unique"
    CHECK = "check"
    FOREIGN_KEY = "foreign_key"


# Logical column type -> (generator, default params)
DEFAULT_GENERATORS: Dict[str, tuple] = {
    "string": ("word", {}),
    "text": ("word", {}),
    "varchar": ("word", {}),
    "char": ("word", {}),
    "integer": ("number", {"min": 0, "max": 100}),
    "int": ("number", {"min": 0, "max": 100}),
    "bigint": ("number", {"min": 0, "max": 100}),
    "smallint": ("number", {"min": 0, "max": 100}),
    "float": ("float", {"min": 0, "max": 100, "precision": 2}),
    "decimal": ("float", {"min": 0, "max": 100, "precision": 2}),
    "numeric": ("float", {"min": 0, "max": 100, "precision": 2}),
    "boolean": ("boolean", {}),
    "bool": ("boolean", {}),
    "datetime": ("datetime", {}),
    "timestamp": ("datetime", {}),
    "date": ("date", {}),
    "uuid": ("uuid", {}),
}

FALLBACK_GENERATOR = "word"


def default_generator(column_type: str) -> tuple:
    """Return (generator, params) used when a column names no generator."""
    name, params = DEFAULT_GENERATORS.get((column_type or "").lower(), (FALLBACK_GENERATOR, {}))
    return name, dict(params)


def _flag(data: Dict[str, Any], *keys: str, default: bool = False) -> bool:
    for key in keys:
        if key in data and data[key] is not None:
            return bool(data[key])
    return default


@dataclass
class Column:
    """A column (or document field) declaration."""
    name: str
    type: str = "string"
    generator: Optional[str] = None
    industry: str = "base"
    params: Dict[str, Any] = field(default_factory=dict)
    values: Optional[List[Any]] = None
    is_primary: bool = False
    is_nullable: bool = False
    is_unique: bool = False
    default: Optional[Any] = None
    nested_fields: List["Column"] = field(default_factory=list)
    subtype: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Column":
        """Build a column from its YAML mapping."""
        if not isinstance(data, dict):
            raise TypeError(f"column definition must be a mapping, got {data!r}")
        return cls(
            name=str(data.get("name") or ""),
            type=str(data.get("type") or ""),
            generator=data.get("generator") or None,
            industry=data.get("industry") or "base",
            params=dict(data.get("params") or {}),
            values=data.get("values"),
            is_primary=_flag(data, "is_primary", "primary_key"),
            is_nullable=_flag(data, "is_nullable", "nullable"),
            is_unique=_flag(data, "is_unique", "unique"),
            default=data.get("default"),
            nested_fields=[cls.from_dict(f) for f in data.get("nested_fields") or []],
            subtype=data.get("subtype"),
        )


@dataclass
class Index:
    """An index declaration."""
    name: str
    columns: List[str] = field(default_factory=list)
    is_unique: bool = False
    type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Index":
        return cls(
            name=str(data.get("name") or ""),
            columns=list(data.get("columns") or []),
            is_unique=_flag(data, "is_unique", "unique"),
            type=data.get("type"),
        )


@dataclass
class Relationship:
    """A foreign key edge: ``from`` is the parent, ``to`` holds the reference."""
    type: str
    from_table: str
    from_column: str
    to_table: str
    to_column: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Relationship":
        return cls(
            type=str(data.get("type") or ""),
            from_table=str(data.get("from_table") or ""),
            from_column=str(data.get("from_column") or ""),
            to_table=str(data.get("to_table") or ""),
            to_column=str(data.get("to_column") or ""),
        )

    @property
    def is_self_reference(self) -> bool:
        return self.from_table == self.to_table

    def describe(self) -> str:
        return f"{self.from_table}.{self.from_column} -> {self.to_table}.{self.to_column}"


@dataclass
class Constraint:
    """An extra table constraint; recorded but not enforced during generation."""
    type: str
    columns: List[str] = field(default_factory=list)
    condition: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Constraint":
        return cls(
            type=str(data.get("type") or ""),
            columns=list(data.get("columns") or []),
            condition=data.get("condition"),
        )


@dataclass
class Table:
    """A table (or collection) to create and fill."""
    name: str
    count: int = 0
    columns: List[Column] = field(default_factory=list)
    indexes: List[Index] = field(default_factory=list)
    data: List[Dict[str, Any]] = field(default_factory=list)

    def get_column(self, name: str) -> Optional[Column]:
        """Get column by name."""
        for column in self.columns:
            if column.name == name:
                return column
        return None

    @property
    def primary_key(self) -> Optional[Column]:
        """The primary key column, if one is flagged."""
        for column in self.columns:
            if column.is_primary:
                return column
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], columns_key: str = "columns") -> "Table":
        return cls(
            name=str(data.get("name") or ""),
            count=data.get("count", 0),
            columns=[Column.from_dict(c) for c in data.get(columns_key) or []],
            indexes=[Index.from_dict(i) for i in data.get("indexes") or []],
            data=list(data.get("data") or []),
        )


@dataclass
class Schema:
    """A complete schema document."""
    tables: List[Table] = field(default_factory=list)
    relations: List[Relationship] = field(default_factory=list)
    constraints: List[Constraint] = field(default_factory=list)

    def get_table(self, name: str) -> Optional[Table]:
        """Get table by name."""
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def table_names(self) -> List[str]:
        return [table.name for table in self.tables]

    def relations_into(self, table_name: str) -> List[Relationship]:
        """Relationships whose child (``to``) side is ``table_name``."""
        return [rel for rel in self.relations if rel.to_table == table_name]

    def get_table_dependencies(self) -> Dict[str, List[str]]:
        """Map each table to its distinct parents, excluding itself."""
        dependencies: Dict[str, List[str]] = {}
        for table in self.tables:
            parents = []
            for rel in self.relations_into(table.name):
                if rel.from_table != table.name and rel.from_table not in parents:
                    parents.append(rel.from_table)
            dependencies[table.name] = parents
        return dependencies


class SeedConfig(BaseModel):
    """Configuration for a seed run."""

    batch_size: int = Field(default=1000, description="Rows per backend insert call")
    seed: Optional[int] = Field(default=None, description="Random seed for reproducible data")
    drop_existing: bool = Field(default=True, description="Drop tables in reverse order before creating them")
    backup_path: Optional[str] = Field(default=None, description="Back up the target here before seeding")
    verify: bool = Field(default=True, description="Probe referential integrity after inserting")
    dry_run: bool = Field(default=False, description="Generate rows without touching the backend")
    count_override: Optional[int] = Field(default=None, description="Row count used for every non-empty table")
    min_relationships: Optional[int] = Field(
        default=None, description="Minimum number of valid relationships (None disables the check)"
    )
    strict_cycles: bool = Field(default=False, description="Fail on multi-table cycles instead of deferring")
    min_per_parent: int = Field(default=2, description="Children guaranteed to every parent key")
    secondary_fk_policy: str = Field(default="random", description="random or balanced")
    max_workers: int = Field(default=1, description="Threads used to generate rows of one table")
    show_progress: bool = Field(default=True, description="Show tqdm progress bars")
    integrity_sample_size: int = Field(default=10, description="Offending values listed per violation")
    timeout_seconds: Optional[float] = Field(default=None, description="Deadline for the whole run")

    @field_validator("batch_size", "max_workers")
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("min_per_parent", "integrity_sample_size")
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("secondary_fk_policy")
    @classmethod
    def validate_policy(cls, v):
        if v not in ("random", "balanced"):
            raise ValueError(f"Unsupported secondary_fk_policy: {v}. Supported: ['random', 'balanced']")
        return v


@dataclass
class IntegrityReport:
    """Outcome of probing one relationship after the run."""
    relationship: Relationship
    violations: int = 0
    offenders: List[Any] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.violations == 0


@dataclass
class SeedResult:
    """Statistics and findings from a seed run."""
    insertion_order: List[str] = field(default_factory=list)
    deferred_tables: List[str] = field(default_factory=list)
    rows_inserted: Dict[str, int] = field(default_factory=dict)
    integrity: List[IntegrityReport] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    data: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    total_time_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return all(report.ok for report in self.integrity)

    @property
    def total_rows(self) -> int:
        return sum(self.rows_inserted.values())

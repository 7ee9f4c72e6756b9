"""Exception hierarchy for MockCraft.

Every exception carries a ``kind`` naming its place in the error taxonomy so
callers (the CLI in particular) can react without matching on class names.
"""

from typing import Iterable, Optional


class MockCraftError(Exception):
    """Base exception for MockCraft errors."""

    kind = "error"


class ConfigurationError(MockCraftError):
    """Invalid connection string or seed settings."""

    kind = "configuration"


class SchemaInvalidError(MockCraftError):
    """Schema document failed validation."""

    kind = "schema_invalid"

    def __init__(self, message: str, problems: Optional[Iterable[str]] = None):
        self.problems = list(problems or [])
        if self.problems:
            details = "\n".join(f"  - {problem}" for problem in self.problems)
            message = f"{message}\n{details}"
        super().__init__(message)


class FKCoverageInsufficientError(SchemaInvalidError):
    """Fewer valid relationships than the configured minimum."""

    kind = "fk_coverage_insufficient"

    def __init__(self, found: int, minimum: int):
        self.found = found
        self.minimum = minimum
        super().__init__(
            f"insufficient valid foreign key relationships: found {found}, minimum {minimum}"
        )


class CyclicSchemaError(MockCraftError):
    """Table relationships contain a cycle that cannot be ordered."""

    kind = "cyclic_schema"

    def __init__(self, tables: Iterable[str]):
        self.tables = sorted(tables)
        super().__init__(
            f"Circular dependency detected involving tables: {', '.join(self.tables)}"
        )


class GeneratorError(MockCraftError):
    """A generator could not produce a value.

    ``industry``, ``generator`` and ``column`` are filled in as the error
    travels up through the engine and row composition.
    """

    kind = "generator"

    def __init__(self, message: str, industry: Optional[str] = None,
                 generator: Optional[str] = None, column: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.industry = industry
        self.generator = generator
        self.column = column

    def with_context(self, industry: Optional[str] = None, generator: Optional[str] = None,
                     column: Optional[str] = None) -> "GeneratorError":
        """Attach context that is not already set and return self."""
        if self.industry is None:
            self.industry = industry
        if self.generator is None:
            self.generator = generator
        if self.column is None:
            self.column = column
        return self

    def __str__(self) -> str:
        where = []
        if self.column:
            where.append(f"column '{self.column}'")
        if self.industry or self.generator:
            where.append(f"generator '{self.industry}.{self.generator}'")
        if where:
            return f"{', '.join(where)}: {self.message}"
        return self.message


class UnknownGeneratorError(GeneratorError):
    """No generator registered under (industry, name)."""

    kind = "unknown_generator"

    def __init__(self, industry: str, name: str, column: Optional[str] = None):
        super().__init__(
            f"unknown generator '{name}' in industry '{industry}'",
            industry=industry, generator=name, column=column,
        )


class InvalidParamError(GeneratorError):
    """A parameter has the wrong type or an unsupported value."""

    kind = "invalid_param"


class RangeViolationError(InvalidParamError):
    """Lower bound is greater than upper bound."""

    kind = "range_violation"


class EmptyEnumError(InvalidParamError):
    """Enum generator was given no values to choose from."""

    kind = "empty_enum"


class BackendIOError(MockCraftError):
    """A backend operation failed."""

    kind = "backend_io"

    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(message)
        self.table = table


class BackupError(MockCraftError):
    """Backup or restore of the target database failed."""

    kind = "backup_failed"


class SeedCancelledError(MockCraftError):
    """Seed run was cancelled or ran past its deadline."""

    kind = "cancelled"

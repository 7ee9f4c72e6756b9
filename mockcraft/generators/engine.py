"""Generator engine: a seeded registry of value generators keyed by industry and name."""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from faker import Faker

from mockcraft.core.errors import GeneratorError, UnknownGeneratorError
from mockcraft.core.models import Column, default_generator
from mockcraft.generators import aviation, base, finance, health, mongo, sql_types
from mockcraft.generators.params import apply_text_transformations
from mockcraft.generators.registry import (
    GeneratorContext, GeneratorFunc, GeneratorInfo, GeneratorSet, GeneratorSpec, ParameterInfo,
)

logger = logging.getLogger(__name__)

BUILTIN_SETS: List[GeneratorSet] = [
    base.generators,
    sql_types.generators,
    mongo.generators,
    health.generators,
    aviation.generators,
    finance.generators,
]

Registry = Dict[str, Dict[str, GeneratorSpec]]


def build_registry(sets: Iterable[GeneratorSet] = BUILTIN_SETS) -> Registry:
    """Merge generator sets into an ``industry -> name -> spec`` mapping."""
    registry: Registry = {}
    for generator_set in sets:
        industry = registry.setdefault(generator_set.industry, {})
        for name, spec in generator_set.generators.items():
            if name in industry:
                raise ValueError(f"Generator '{generator_set.industry}.{name}' registered twice")
            industry[name] = spec
    return registry


class GeneratorEngine:
    """Resolves (industry, name) to a generator and calls it with one seeded PRNG.

    The engine is not safe for concurrent use; use :meth:`spawn` to give each
    worker its own deterministic child engine.
    """

    def __init__(self, seed: Union[int, str, None] = 0, now: Optional[datetime] = None,
                 registry: Optional[Registry] = None, sequence_offset: int = 0):
        self.seed = 0 if seed is None else seed
        self.now = now or datetime.now().replace(microsecond=0)
        self.faker = Faker()
        self.faker.seed_instance(self.seed)
        self.random = self.faker.random
        self._registry = registry if registry is not None else build_registry()
        self.context = GeneratorContext(
            random=self.random,
            faker=self.faker,
            now=self.now,
            engine=self,
            sequence_offset=sequence_offset,
        )

    def spawn(self, key: Union[int, str], sequence_offset: int = 0) -> "GeneratorEngine":
        """Create a child engine whose PRNG is derived from this engine's seed and ``key``."""
        return GeneratorEngine(
            seed=f"{self.seed}:{key}",
            now=self.now,
            registry=self._registry,
            sequence_offset=sequence_offset,
        )

    def register(self, industry: str, name: str, func: GeneratorFunc, description: str = "",
                 example: str = "", parameters: Optional[List[ParameterInfo]] = None) -> None:
        """Register a plug-in generator."""
        generators = self._registry.setdefault(industry, {})
        if name in generators:
            raise ValueError(f"Generator '{industry}.{name}' already registered")
        info = GeneratorInfo(name=name, industry=industry, description=description,
                             example=example, parameters=list(parameters or []))
        generators[name] = GeneratorSpec(func=func, info=info)
        logger.debug(f"Registered generator {industry}.{name}")

    def validate(self, industry: str, name: str) -> bool:
        """Return True if ``(industry, name)`` is registered."""
        return name in self._registry.get(industry, {})

    def require(self, industry: str, name: str) -> None:
        """Raise :class:`UnknownGeneratorError` unless ``(industry, name)`` is registered."""
        self._lookup(industry, name)

    def _lookup(self, industry: str, name: str) -> GeneratorSpec:
        try:
            return self._registry[industry][name]
        except KeyError:
            raise UnknownGeneratorError(industry, name) from None

    def generate(self, industry: str, name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Generate one value, then apply text transformations and ``max_length``."""
        spec = self._lookup(industry, name)
        params = dict(params or {})
        try:
            value = spec.func(self.context, params)
            return apply_text_transformations(value, params)
        except GeneratorError as e:
            raise e.with_context(industry=industry, generator=name)
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise GeneratorError(str(e), industry=industry, generator=name) from e

    def generate_row(self, column_specs: Iterable[Column],
                     inherited_context: Optional[Dict[str, Any]] = None,
                     scope: Optional[str] = None) -> Dict[str, Any]:
        """Generate a row; columns already present in ``inherited_context`` are kept as-is.

        ``scope`` (normally the table name) qualifies the column name passed to
        generators, so per-column counters of different tables stay apart.
        """
        row = dict(inherited_context or {})
        for column in column_specs:
            if column.name in row:
                continue
            generator, params = column.generator, dict(column.params)
            if not generator:
                generator, defaults = default_generator(column.type)
                params = {**defaults, **params}
            if generator == "enum" and column.values and "values" not in params:
                params["values"] = list(column.values)
            if generator == "embedded_document" and column.nested_fields and "fields" not in params:
                params["fields"] = column.nested_fields
            if generator == "mongo_binary" and column.subtype and "subtype" not in params:
                params["subtype"] = column.subtype
            params.setdefault("_column", f"{scope}.{column.name}" if scope else column.name)
            try:
                row[column.name] = self.generate(column.industry or "base", generator, params)
            except GeneratorError as e:
                raise e.with_context(column=column.name)
        return row

    def list_industries(self) -> List[str]:
        return sorted(self._registry)

    def list_generators(self, industry: str) -> List[str]:
        if industry not in self._registry:
            raise UnknownGeneratorError(industry, "*")
        return sorted(self._registry[industry])

    def info(self, industry: str, name: str) -> GeneratorInfo:
        return self._lookup(industry, name).info


_default_engine: Optional[GeneratorEngine] = None


def get_engine() -> GeneratorEngine:
    """Shared engine seeded with 0, for ad-hoc use.

    Seed runs should construct their own engine so their output does not
    depend on what else has drawn from this one.
    """
    global _default_engine
    if _default_engine is None:
        _default_engine = GeneratorEngine(seed=0)
    return _default_engine

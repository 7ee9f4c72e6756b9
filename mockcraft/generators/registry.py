"""Generator metadata and per-industry registration sets."""

import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from faker import Faker


@dataclass
class GeneratorContext:
    """Everything a generator function may draw from.

    Generators must use ``random`` and ``faker`` only; both are bound to the
    same seeded PRNG owned by the engine.
    """
    random: random.Random
    faker: Faker
    now: datetime
    engine: Any = None
    counters: Dict[str, int] = field(default_factory=dict)
    sequence_offset: int = 0


@dataclass
class ParameterInfo:
    """Describes one recognized parameter of a generator."""
    name: str
    type: str
    description: str = ""
    required: bool = False
    default: Any = None
    options: Optional[List[Any]] = None
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass
class GeneratorInfo:
    """Metadata shown by ``mockcraft info``."""
    name: str
    industry: str
    description: str = ""
    example: str = ""
    parameters: List[ParameterInfo] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "industry": self.industry,
            "description": self.description,
            "example": self.example,
            "parameters": [vars(p).copy() for p in self.parameters],
        }


GeneratorFunc = Callable[[GeneratorContext, Dict[str, Any]], Any]


@dataclass
class GeneratorSpec:
    """A registered generator: the function plus its metadata."""
    func: GeneratorFunc
    info: GeneratorInfo


class GeneratorSet:
    """Collects the generators of one industry at import time."""

    def __init__(self, industry: str):
        self.industry = industry
        self.generators: Dict[str, GeneratorSpec] = {}

    def register(self, name: str, description: str = "", example: str = "",
                 parameters: Optional[List[ParameterInfo]] = None):
        """Decorator registering ``func`` under ``name``."""
        def decorator(func: GeneratorFunc) -> GeneratorFunc:
            self.add(name, func, description, example, parameters)
            return func
        return decorator

    def add(self, name: str, func: GeneratorFunc, description: str = "",
            example: str = "", parameters: Optional[List[ParameterInfo]] = None) -> None:
        if name in self.generators:
            raise ValueError(f"Generator '{self.industry}.{name}' registered twice")
        info = GeneratorInfo(
            name=name,
            industry=self.industry,
            description=description or (func.__doc__ or "").strip(),
            example=example,
            parameters=list(parameters or []),
        )
        self.generators[name] = GeneratorSpec(func=func, info=info)


# Parameter definitions shared by several generators
MIN_MAX_INT = [
    ParameterInfo("min", "int", "Lower bound (inclusive)", default=0),
    ParameterInfo("max", "int", "Upper bound (inclusive)", default=100),
]

MIN_MAX_FLOAT = [
    ParameterInfo("min", "float", "Lower bound (inclusive)", default=0.0),
    ParameterInfo("max", "float", "Upper bound (inclusive)", default=100.0),
    ParameterInfo("precision", "int", "Decimal places", default=2, min=0),
]

DATE_WINDOW = [
    ParameterInfo("start", "string", "Start of window (ISO-8601)", default="now - 1 year"),
    ParameterInfo("end", "string", "End of window (ISO-8601)", default="now"),
    ParameterInfo("format", "string", "strftime pattern; returns a string when set"),
]

"""
MockCraft - Seed databases with realistic mock data that respects foreign keys.

This package provides tools to:
- Generate values from a registry of industry-specific generators
- Order tables by their foreign key dependencies
- Spread child rows evenly over parent keys
- Insert into PostgreSQL, MySQL, SQLite, MongoDB, or CSV/JSON/SQL files
"""

__version__ = "1.0.0"

from mockcraft.core.models import Schema, SeedConfig, SeedResult
from mockcraft.core.schema_loader import load_schema
from mockcraft.core.seeder import Seeder
from mockcraft.generators.engine import GeneratorEngine, get_engine
from mockcraft.backends import create_backend

__all__ = [
    "Schema",
    "SeedConfig",
    "SeedResult",
    "Seeder",
    "GeneratorEngine",
    "get_engine",
    "create_backend",
    "load_schema",
]

"""Value generators organized by industry."""

from mockcraft.generators.engine import GeneratorEngine, get_engine

__all__ = ["GeneratorEngine", "get_engine"]

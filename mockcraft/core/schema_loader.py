"""Loading schema documents from YAML."""

import logging
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from .errors import SchemaInvalidError
from .models import Constraint, Relationship, Schema, Table

logger = logging.getLogger(__name__)


def load_schema(path: Union[str, Path]) -> Schema:
    """Read and parse a YAML schema file."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except OSError as e:
        raise SchemaInvalidError(f"Cannot read schema file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise SchemaInvalidError(f"Schema file {path} is not valid YAML: {e}") from e
    logger.info(f"Loaded schema from {path}")
    return schema_from_dict(document)


def schema_from_dict(document: Any) -> Schema:
    """Build a :class:`Schema` from a parsed document.

    Accepts ``relations`` or ``relationships`` for the edge list and converts
    ``collections`` (``name``/``count``/``fields``) into tables.
    """
    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise SchemaInvalidError("Schema document must be a mapping at the top level")

    try:
        tables = [Table.from_dict(t) for t in _as_list(document, "tables")]
        tables.extend(
            Table.from_dict(c, columns_key="fields") for c in _as_list(document, "collections")
        )
        relations_key = "relations" if "relations" in document else "relationships"
        relations = [Relationship.from_dict(r) for r in _as_list(document, relations_key)]
        constraints = [Constraint.from_dict(c) for c in _as_list(document, "constraints")]
    except (TypeError, AttributeError) as e:
        raise SchemaInvalidError(f"Malformed schema document: {e}") from e

    return Schema(tables=tables, relations=relations, constraints=constraints)


def _as_list(document: Dict[str, Any], key: str) -> list:
    value = document.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise SchemaInvalidError(f"'{key}' must be a list")
    return value

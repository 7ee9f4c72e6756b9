"""Backend factory keyed by connection URL scheme."""

import logging
from typing import Callable, Dict

from mockcraft.core.database import DatabaseConfig, parse_database_url
from .base import Backend
from .mongodb import MongoBackend
from .sql import SQLBackend

logger = logging.getLogger(__name__)

BACKENDS: Dict[str, Callable[[DatabaseConfig], Backend]] = {
    "postgresql": SQLBackend,
    "mysql": SQLBackend,
    "sqlite": SQLBackend,
    "mongodb": MongoBackend,
}


def create_backend(url: str) -> Backend:
    """Return an unconnected backend for ``url``, chosen by its scheme."""
    config = parse_database_url(url)
    logger.debug(f"Using {BACKENDS[config.driver].__name__} for {config.driver}")
    return BACKENDS[config.driver](config)

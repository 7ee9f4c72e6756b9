"""Storage backends for seeded data."""

from .base import Backend, Transaction
from .factory import BACKENDS, create_backend
from .file import FileBackend
from .mongodb import MongoBackend
from .sql import SQLBackend

__all__ = [
    "Backend",
    "Transaction",
    "SQLBackend",
    "MongoBackend",
    "FileBackend",
    "BACKENDS",
    "create_backend",
]

"""
Persistence adapters.

Today everything lives in a single JSON file (see json_storage). Services and
routers receive a store instance instead of touching the file directly.
"""

from .errors import (
    RecordNotFoundError,
    StorageError,
    StorageUnavailableError,
    ValidationPreconditionError,
)
from .json_storage import JSONRecordStore

__all__ = [
    "JSONRecordStore",
    "RecordNotFoundError",
    "StorageError",
    "StorageUnavailableError",
    "ValidationPreconditionError",
]

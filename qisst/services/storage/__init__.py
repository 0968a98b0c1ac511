"""
Storage Services Package

Provides the abstract bucket store and its implementations.
Local JSON files are the default backend; Google Sheets and an in-memory
store are drop-in replacements.
"""

from qisst.services.storage.interface import (
    Bucket,
    BucketStore,
    ConnectionError,
    StorageError,
    StoreReadCorrupt,
)
from qisst.services.storage.snapshot import (
    default_for,
    dump_bucket,
    load_bucket,
)
from qisst.services.storage.json_file import JsonFileStore
from qisst.services.storage.memory import InMemoryStore
from qisst.services.storage.google_sheets import (
    GoogleSheetsBucketStore,
    GoogleSheetsClient,
)

__all__ = [
    # Interface
    "Bucket",
    "BucketStore",
    # Exceptions
    "ConnectionError",
    "StorageError",
    "StoreReadCorrupt",
    # Snapshot codec
    "default_for",
    "dump_bucket",
    "load_bucket",
    # Implementations
    "GoogleSheetsBucketStore",
    "GoogleSheetsClient",
    "InMemoryStore",
    "JsonFileStore",
]

"""
Abstract Storage Interface

DESIGN DECISION: Storage is a dumb key-value store of JSON snapshots.
Each of the four buckets (settings, members, cycles, payments) is written
whole after every change and read whole at startup. This allows us to:
1. Keep the store ignorant of what the snapshots mean
2. Use in-memory storage for testing
3. Swap the local JSON files for Google Sheets (or anything else)

The interface is intentionally simple - we're not building a database.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional


class Bucket(str, Enum):
    """The four independently persisted collections."""
    SETTINGS = "settings"
    MEMBERS = "members"
    CYCLES = "cycles"
    PAYMENTS = "payments"


class BucketStore(ABC):
    """
    Abstract interface for bucket storage operations.

    Any storage implementation (JSON files, Google Sheets, etc.)
    must implement load, save and delete.
    """

    def __init__(self, key_prefix: str = "qisst_"):
        self._key_prefix = key_prefix

    def key_for(self, bucket: Bucket) -> str:
        """Storage key for a bucket, e.g. 'qisst_members'."""
        return f"{self._key_prefix}{Bucket(bucket).value}"

    @abstractmethod
    def load(self, bucket: Bucket) -> Optional[str]:
        """
        Read the last snapshot written for a bucket.

        Args:
            bucket: Which bucket to read

        Returns:
            The snapshot exactly as saved, or None if never written

        Raises:
            StorageError: If the backend can't be read
        """
        pass

    @abstractmethod
    def save(self, bucket: Bucket, snapshot: str) -> bool:
        """
        Replace a bucket's snapshot.

        Args:
            bucket: Which bucket to write
            snapshot: Serialized collection (opaque to the store)

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    def delete(self, bucket: Bucket) -> bool:
        """
        Remove a bucket's snapshot so the next load returns None.

        Returns:
            True if something was removed
        """
        pass

    def save_many(self, snapshots: dict[Bucket, str]) -> bool:
        """
        Write several buckets together.

        The default writes them one after another, so a crash midway can
        leave the buckets disagreeing. Backends that can do better override
        this.
        """
        for bucket, snapshot in snapshots.items():
            self.save(bucket, snapshot)
        return True


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StoreReadCorrupt(StorageError):
    """A stored snapshot could not be parsed into its collection."""

    def __init__(self, bucket: Bucket, message: str):
        self.bucket = bucket
        super().__init__(message)


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass

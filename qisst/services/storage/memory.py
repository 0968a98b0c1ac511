"""In-memory bucket storage, for tests and throwaway sessions."""

from typing import Optional

from qisst.services.storage.interface import Bucket, BucketStore


class InMemoryStore(BucketStore):
    """Keeps snapshots in a dict keyed like the real stores."""

    def __init__(
        self,
        initial: Optional[dict[Bucket, str]] = None,
        key_prefix: str = "qisst_",
    ):
        super().__init__(key_prefix=key_prefix)
        self._data: dict[str, str] = {}
        self.save_count = 0
        for bucket, snapshot in (initial or {}).items():
            self._data[self.key_for(bucket)] = snapshot

    def load(self, bucket: Bucket) -> Optional[str]:
        return self._data.get(self.key_for(bucket))

    def save(self, bucket: Bucket, snapshot: str) -> bool:
        self._data[self.key_for(bucket)] = snapshot
        self.save_count += 1
        return True

    def delete(self, bucket: Bucket) -> bool:
        return self._data.pop(self.key_for(bucket), None) is not None

    def keys(self) -> list[str]:
        return sorted(self._data)

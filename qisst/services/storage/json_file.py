"""
Local JSON File Storage

DESIGN DECISION: One file per bucket in a data directory
(e.g. data/qisst_members.json). This is the default backend because:
1. Zero setup for a single organizer on one machine
2. Files are readable and easy to back up by copying the folder
3. Each write goes to a temp file first and is swapped in with
   os.replace, so a crash never leaves a half-written bucket

TRADEOFFS:
- One process at a time (the session is single-writer anyway)
- save_many narrows but cannot fully close the cross-bucket window:
  all files are staged first, then swapped in back to back
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog

from qisst.services.storage.interface import (
    Bucket,
    BucketStore,
    StorageError,
    StoreReadCorrupt,
)


logger = structlog.get_logger(__name__)


class JsonFileStore(BucketStore):
    """Bucket storage backed by one JSON file per bucket."""

    def __init__(
        self,
        data_dir: Union[str, Path],
        key_prefix: str = "qisst_",
    ):
        super().__init__(key_prefix=key_prefix)
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, bucket: Bucket) -> Path:
        return self._data_dir / f"{self.key_for(bucket)}.json"

    def load(self, bucket: Bucket) -> Optional[str]:
        """Read a bucket file; None if it doesn't exist yet."""
        path = self.path_for(bucket)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise StoreReadCorrupt(Bucket(bucket), f"{path} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}")

    def _stage(self, bucket: Bucket, snapshot: str) -> Path:
        """Write a snapshot to a temp file next to its final location."""
        self._data_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.key_for(bucket)}.",
            suffix=".tmp",
            dir=self._data_dir,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(snapshot)
                handle.flush()
                os.fsync(handle.fileno())
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return Path(tmp_name)

    def save(self, bucket: Bucket, snapshot: str) -> bool:
        """Atomically replace a bucket file."""
        return self.save_many({Bucket(bucket): snapshot})

    def save_many(self, snapshots: dict[Bucket, str]) -> bool:
        """Stage every bucket first, then swap them all in."""
        staged: list[tuple[Path, Path]] = []
        try:
            for bucket, snapshot in snapshots.items():
                staged.append((self._stage(bucket, snapshot), self.path_for(bucket)))
            for tmp_path, final_path in staged:
                os.replace(tmp_path, final_path)
        except OSError as e:
            for tmp_path, _ in staged:
                tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to save buckets to {self._data_dir}: {e}")

        logger.debug(
            "buckets_saved",
            buckets=[Bucket(b).value for b in snapshots],
            data_dir=str(self._data_dir),
        )
        return True

    def delete(self, bucket: Bucket) -> bool:
        path = self.path_for(bucket)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}")

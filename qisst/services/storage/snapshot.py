"""
Bucket Snapshot Codec

Converts each collection to and from the JSON text the stores keep.
Field names are written in camelCase (joinDate, hasReceivedPot, ...),
the same shape the buckets have always had.

Reading never half-succeeds: a snapshot either parses completely into
valid models or load_bucket raises StoreReadCorrupt for that bucket.
"""

from typing import Any, Optional, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from qisst.models.committee import (
    CommitteeSettings,
    Cycle,
    Member,
    PaymentRecord,
)
from qisst.services.storage.interface import Bucket, StoreReadCorrupt


BucketValue = Union[CommitteeSettings, list[Member], list[Cycle], list[PaymentRecord]]

_ADAPTERS: dict[Bucket, TypeAdapter] = {
    Bucket.SETTINGS: TypeAdapter(CommitteeSettings),
    Bucket.MEMBERS: TypeAdapter(list[Member]),
    Bucket.CYCLES: TypeAdapter(list[Cycle]),
    Bucket.PAYMENTS: TypeAdapter(list[PaymentRecord]),
}


def default_for(bucket: Bucket) -> BucketValue:
    """First-run value: default settings or an empty list."""
    if Bucket(bucket) == Bucket.SETTINGS:
        return CommitteeSettings()
    return []


def dump_bucket(bucket: Bucket, value: Any) -> str:
    """Serialize a collection for storage."""
    adapter = _ADAPTERS[Bucket(bucket)]
    return adapter.dump_json(value, by_alias=True).decode("utf-8")


def load_bucket(bucket: Bucket, raw: Optional[str]) -> BucketValue:
    """
    Parse a stored snapshot.

    Args:
        bucket: Which bucket the snapshot belongs to
        raw: Snapshot text, or None if the bucket was never written

    Returns:
        The collection, or the bucket default when raw is None/blank

    Raises:
        StoreReadCorrupt: If raw is not valid JSON for this bucket
    """
    bucket = Bucket(bucket)
    if raw is None or not raw.strip():
        return default_for(bucket)

    try:
        return _ADAPTERS[bucket].validate_json(raw)
    except PydanticValidationError as e:
        raise StoreReadCorrupt(
            bucket,
            f"Stored '{bucket.value}' snapshot is unreadable "
            f"({e.error_count()} error(s)): {e.errors()[0]['msg']}",
        ) from e

"""Storage adapter contract shared by the durable and embedded backends."""

from datetime import datetime, timedelta
from typing import Literal, Protocol, runtime_checkable

from onehitter.config import ttl_is_enforced
from onehitter.core.schemas import OtpAttempt, OtpRecord, ValidateStatus
from onehitter.utils import ensure_utc, utc_now


@runtime_checkable
class StorageAdapter(Protocol):
    """Persists hashed codes and consumes them at most once."""

    name: Literal["durable", "embedded"]

    async def create(self, record: OtpRecord) -> int:
        """Hash and insert a record, returning the storage-assigned id."""
        ...

    async def consume_and_status(
        self,
        attempt: OtpAttempt,
        now: datetime,
        ttl_seconds: float | None,
    ) -> ValidateStatus:
        """Atomically find and delete a matching record and classify it.

        Returns OK, NOT_FOUND or EXPIRED, never BLOCKED.
        """
        ...

    async def purge_expired(self, now: datetime, ttl_seconds: float) -> int:
        """Delete records older than ``ttl_seconds``. Returns count deleted."""
        ...


def classify(created_at: datetime, now: datetime, ttl_seconds: float | None) -> ValidateStatus:
    """Status of a record that was just consumed.

    Expired when a positive finite TTL is configured and the record is older
    than it. Any other TTL value disables the check.
    """
    if not ttl_is_enforced(ttl_seconds):
        return ValidateStatus.OK
    age = (ensure_utc(now) - ensure_utc(created_at)).total_seconds()
    if age > ttl_seconds:
        return ValidateStatus.EXPIRED
    return ValidateStatus.OK


def record_timestamp(record: OtpRecord) -> datetime:
    """The record's creation time in UTC, or now when the caller left it unset."""
    if record.created_at is None:
        return utc_now()
    return ensure_utc(record.created_at)


def expiry_cutoff(now: datetime, ttl_seconds: float) -> datetime | None:
    """Creation time before which records are expired.

    None when the TTL reaches past the earliest representable datetime, in
    which case nothing can be old enough to purge.
    """
    try:
        return ensure_utc(now) - timedelta(seconds=ttl_seconds)
    except OverflowError:
        return None

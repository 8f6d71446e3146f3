"""Durable adapter — SQL backend shared by many service instances.

The caller owns the ``AsyncEngine`` (construct, connect, dispose). The adapter
borrows it for one call at a time and never disposes it.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from onehitter.core.hashing import Hasher
from onehitter.core.schemas import OtpAttempt, OtpRecord, ValidateStatus
from onehitter.db import create_session_factory, get_session
from onehitter.errors import StorageError
from onehitter.repositories import otp as otp_repo
from onehitter.storage.base import classify, expiry_cutoff, record_timestamp

logger = logging.getLogger("onehitter.storage.durable")


class DurableAdapter:
    """Consumes codes with a single ``DELETE ... RETURNING`` statement.

    Concurrent validations of one record, from this process or any other,
    resolve to exactly one winner. Rows removed by an external sweep before
    the statement ran read as NOT_FOUND, never EXPIRED.
    """

    name = "durable"

    def __init__(self, engine: AsyncEngine, hasher: Hasher) -> None:
        self._engine = engine
        self._hasher = hasher
        self._session_factory = create_session_factory(engine)

    async def create(self, record: OtpRecord) -> int:
        created_at = record_timestamp(record)
        contact_id = self._hasher.hash_contact(record.contact)
        code_hash = self._hasher.hash_code(record.contact, record.otp)

        try:
            async with get_session(self._session_factory) as session:
                otp = await otp_repo.create_otp(
                    session,
                    contact_id=contact_id,
                    code_hash=code_hash,
                    created_at=created_at,
                )
                otp_id = otp.id
        except SQLAlchemyError as exc:
            raise StorageError("Failed to store OTP") from exc

        logger.debug("Stored OTP id=%s", otp_id)
        return otp_id

    async def consume_and_status(
        self,
        attempt: OtpAttempt,
        now: datetime,
        ttl_seconds: float | None,
    ) -> ValidateStatus:
        contact_id = self._hasher.hash_contact(attempt.contact)
        code_hash = self._hasher.hash_code(attempt.contact, attempt.otp)

        try:
            async with get_session(self._session_factory) as session:
                created_at = await otp_repo.take_match(session, contact_id, code_hash)
        except SQLAlchemyError as exc:
            raise StorageError("Failed to consume OTP") from exc

        if created_at is None:
            return ValidateStatus.NOT_FOUND
        return classify(created_at, now, ttl_seconds)

    async def purge_expired(self, now: datetime, ttl_seconds: float) -> int:
        cutoff = expiry_cutoff(now, ttl_seconds)
        if cutoff is None:
            return 0
        try:
            async with get_session(self._session_factory) as session:
                deleted = await otp_repo.delete_otps_created_before(session, cutoff)
        except SQLAlchemyError as exc:
            raise StorageError("Failed to purge expired OTPs") from exc

        if deleted:
            logger.info("Purged %d expired OTP(s)", deleted)
        return deleted

"""Embedded adapter — single-process SQLite store owned by the engine.

One connection is opened lazily on first use and kept until ``dispose()``.
Every operation runs under the adapter's lock, so in-process callers take
turns on that connection. There is no background expiry: age is checked when
a code is validated.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from onehitter.core.hashing import Hasher
from onehitter.core.schemas import OtpAttempt, OtpRecord, ValidateStatus
from onehitter.db import create_engine, create_session_factory, ensure_schema, get_session, sqlite_url
from onehitter.errors import StorageError
from onehitter.repositories import otp as otp_repo
from onehitter.storage.base import classify, expiry_cutoff, record_timestamp

logger = logging.getLogger("onehitter.storage.embedded")


class EmbeddedAdapter:
    """Newest matching record wins; a delete that affects no row reads as NOT_FOUND."""

    name = "embedded"

    def __init__(self, hasher: Hasher, sqlite_path: str = ":memory:") -> None:
        self._hasher = hasher
        self._sqlite_path = sqlite_path
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    async def _factory(self) -> async_sessionmaker[AsyncSession]:
        """Open the connection and create the schema on first use. Caller holds the lock."""
        if self._session_factory is None:
            engine = create_engine(sqlite_url(self._sqlite_path), single_connection=True)
            try:
                await ensure_schema(engine)
            except SQLAlchemyError as exc:
                await engine.dispose()
                raise StorageError(f"Failed to open embedded store at {self._sqlite_path}") from exc
            self._engine = engine
            self._session_factory = create_session_factory(engine)
            logger.debug("Opened embedded OTP store at %s", self._sqlite_path)
        return self._session_factory

    async def create(self, record: OtpRecord) -> int:
        created_at = record_timestamp(record)
        contact_id = self._hasher.hash_contact(record.contact)
        code_hash = self._hasher.hash_code(record.contact, record.otp)

        async with self._lock:
            factory = await self._factory()
            try:
                async with get_session(factory) as session:
                    otp = await otp_repo.create_otp(
                        session,
                        contact_id=contact_id,
                        code_hash=code_hash,
                        created_at=created_at,
                    )
                    otp_id = otp.id
            except SQLAlchemyError as exc:
                raise StorageError("Failed to store OTP") from exc

        return otp_id

    async def consume_and_status(
        self,
        attempt: OtpAttempt,
        now: datetime,
        ttl_seconds: float | None,
    ) -> ValidateStatus:
        contact_id = self._hasher.hash_contact(attempt.contact)
        code_hash = self._hasher.hash_code(attempt.contact, attempt.otp)

        async with self._lock:
            factory = await self._factory()
            try:
                async with get_session(factory) as session:
                    otp = await otp_repo.get_newest_match(session, contact_id, code_hash)
                    if otp is None:
                        return ValidateStatus.NOT_FOUND
                    created_at = otp.created_at
                    deleted = await otp_repo.delete_otp(session, otp.id)
            except SQLAlchemyError as exc:
                raise StorageError("Failed to consume OTP") from exc

        if deleted == 0:
            return ValidateStatus.NOT_FOUND
        return classify(created_at, now, ttl_seconds)

    async def purge_expired(self, now: datetime, ttl_seconds: float) -> int:
        cutoff = expiry_cutoff(now, ttl_seconds)
        if cutoff is None:
            return 0
        async with self._lock:
            factory = await self._factory()
            try:
                async with get_session(factory) as session:
                    return await otp_repo.delete_otps_created_before(session, cutoff)
            except SQLAlchemyError as exc:
                raise StorageError("Failed to purge expired OTPs") from exc

    async def dispose(self) -> None:
        """Close the connection. The next call reopens it (an in-memory store starts empty)."""
        async with self._lock:
            if self._engine is not None:
                await self._engine.dispose()
                self._engine = None
                self._session_factory = None

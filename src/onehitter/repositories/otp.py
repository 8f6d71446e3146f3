"""OTP repository — database operations on pending codes."""

from datetime import datetime

from sqlalchemy import delete as sa_delete, func
from sqlalchemy.orm import aliased
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from onehitter.models.otp import PendingOtp


async def create_otp(
    session: AsyncSession,
    *,
    contact_id: str,
    code_hash: str,
    created_at: datetime,
) -> PendingOtp:
    """Insert a pending code (digests only). Always a new row."""
    otp = PendingOtp(
        contact_id=contact_id,
        code_hash=code_hash,
        created_at=created_at,
    )
    session.add(otp)
    await session.flush()
    return otp


async def get_newest_match(
    session: AsyncSession,
    contact_id: str,
    code_hash: str,
) -> PendingOtp | None:
    """Newest pending code for (contact_id, code_hash), highest id first."""
    statement = (
        select(PendingOtp)
        .where(PendingOtp.contact_id == contact_id, PendingOtp.code_hash == code_hash)
        .order_by(PendingOtp.id.desc())
        .limit(1)
    )
    result = await session.exec(statement)
    return result.first()


async def delete_otp(session: AsyncSession, otp_id: int) -> int:
    """Delete one pending code by id. Returns rows affected (0 if already gone)."""
    stmt = (
        sa_delete(PendingOtp)
        .where(PendingOtp.id == otp_id)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount


async def take_match(
    session: AsyncSession,
    contact_id: str,
    code_hash: str,
) -> datetime | None:
    """Delete one matching pending code in a single statement and return its created_at.

    ``DELETE ... WHERE id = (SELECT ... LIMIT 1) RETURNING`` runs as one
    server-side operation: when callers race on the same row, only one gets it
    back and the others see no row. Requires RETURNING support
    (PostgreSQL, SQLite >= 3.35).
    """
    candidate = aliased(PendingOtp)
    newest_id = (
        select(candidate.id)
        .where(candidate.contact_id == contact_id, candidate.code_hash == code_hash)
        .order_by(candidate.id.desc())
        .limit(1)
        .scalar_subquery()
    )
    stmt = (
        sa_delete(PendingOtp)
        .where(PendingOtp.id == newest_id)
        .returning(PendingOtp.created_at)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def delete_otps_created_before(session: AsyncSession, cutoff: datetime) -> int:
    """Delete every pending code created before ``cutoff``. Returns count deleted."""
    stmt = (
        sa_delete(PendingOtp)
        .where(PendingOtp.created_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount


async def count_otps(session: AsyncSession, contact_id: str) -> int:
    """Number of pending codes for a contact."""
    statement = select(func.count()).select_from(PendingOtp).where(PendingOtp.contact_id == contact_id)
    return (await session.exec(statement)).one()

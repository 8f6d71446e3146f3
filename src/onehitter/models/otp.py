from datetime import datetime

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from onehitter.models.base import Base
from onehitter.utils import TZDateTime, utc_now


class PendingOtp(Base):
    """An issued, not yet consumed code. Holds digests only, never plaintext."""

    __tablename__ = "onehitter_otps"
    __table_args__ = (
        Index("ix_onehitter_otps_contact_id_code_hash", "contact_id", "code_hash"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    contact_id: Mapped[str] = mapped_column(String(64), nullable=False)
    code_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(TZDateTime(), nullable=False, default=utc_now, index=True)

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""E-mail verification link tokens.

Single-use tokens bound to an account with an absolute expiry (one hour by
default). Used only by the verification-link flow, separate from OTPs.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import Base
from src.utils.datetime import utc_now


class VerificationToken(Base):
    """Verification link token.

    Attributes:
        token: Random UUID string (primary key).
        account_id: Owning account.
        expires_at: Absolute expiry.
    """

    __tablename__ = "verification_tokens"

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    account_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    account: Mapped["Account"] = relationship(back_populates="verification_tokens")  # noqa: F821

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""One-time code records."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base
from src.utils.datetime import utc_now


class OTPRecord(Base):
    """A purpose-scoped one-time code.

    At most one record exists per (identifier, purpose); generating a new
    code replaces the old one. Records are deleted after successful use or
    when found expired.

    Attributes:
        identifier: E-mail or phone number, depending on purpose.
        purpose: Login | Registration | ForgotPassword | ExpertVerification.
        code: Six-digit code.
        expires_at: Absolute expiry.
    """

    __tablename__ = "otp_records"
    __table_args__ = (
        UniqueConstraint("identifier", "purpose", name="uq_otp_records_identifier_purpose"),
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    identifier: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    purpose: Mapped[str] = mapped_column(String(32), nullable=False)
    code: Mapped[str] = mapped_column(String(12), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

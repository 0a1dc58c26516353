# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Account model for the credential store.

Security:
    - password_hash: bcrypt hash, never plaintext
    - status / verification_status / role: server-written only

Lifecycle:
    - Registration creates Inactive / Pending
    - OTP or link verification moves to Active / Verified
    - Deactivate -> Inactive, soft delete -> Deleted, admin block -> Blocked
"""

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import Base, TimestampMixin
from src.models.common import AccountRole, AccountStatus, VerificationStatus


class Account(TimestampMixin, Base):
    """Platform account.

    Every account has exactly one status and one verification value at all
    times; the check constraints pin them to the enum values.

    Fields:
        id: Numeric primary key (carried as the userId claim)
        username: Unique login name (token subject)
        full_name: Display name
        password_hash: bcrypt hash
        email: Unique e-mail address
        phone_number: Unique phone number
        status: Active | Inactive | Deleted | Blocked
        verification_status: Verified | Pending | Rejected
        role: FARMER | EXPERT | ADMIN
    """

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            "status IN ('Active', 'Inactive', 'Deleted', 'Blocked')",
            name="valid_account_status",
        ),
        CheckConstraint(
            "verification_status IN ('Verified', 'Pending', 'Rejected')",
            name="valid_verification_status",
        ),
        CheckConstraint(
            "role IN ('FARMER', 'EXPERT', 'ADMIN')",
            name="valid_account_role",
        ),
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    username: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    phone_number: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AccountStatus.INACTIVE.value,
    )
    verification_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=VerificationStatus.PENDING.value,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AccountRole.FARMER.value,
    )

    verification_tokens: Mapped[list["VerificationToken"]] = relationship(  # noqa: F821
        back_populates="account",
        cascade="all, delete-orphan",
    )

    @property
    def account_status(self) -> AccountStatus:
        """Status as an enum."""
        return AccountStatus(self.status)

    @property
    def verification(self) -> VerificationStatus:
        """Verification status as an enum."""
        return VerificationStatus(self.verification_status)

    @property
    def account_role(self) -> AccountRole:
        """Role as an enum."""
        return AccountRole(self.role)

    @property
    def is_verified(self) -> bool:
        """Check if the account completed verification."""
        return self.verification_status == VerificationStatus.VERIFIED.value

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, username={self.username!r}, status={self.status})>"

"""
Quotation OTP model.

WHAT: Stores one-time codes that gate a client's accept/reject decision.

WHY: A logged-in session proves who the user is, not that they meant to
make an irrevocable decision. The OTP is that second proof:
1. Scoped to one (quotation, user) pair and one intended action
2. Time-limited (expires_at)
3. Single-use (consumed_at)
4. Replaced by a newer request (superseded_at)
5. Kept forever for audit; rows are never deleted

HOW: Only a keyed hash of the code is stored (see core.auth.hash_otp_code).
The plaintext exists only in the issuing call and the email sent to the
requester.
"""

import enum
from sqlalchemy import Column, Integer, String, Enum, ForeignKey, DateTime, Index
from sqlalchemy.orm import relationship

from client_portal.models.base import Base, PrimaryKeyMixin, utcnow


class QuotationActionType(str, enum.Enum):
    """
    Client decision an OTP (and its audit row) stands for.

    WHY: A closed enum means an OTP can never be issued for anything other
    than accept or reject.
    """

    ACCEPT = "ACCEPT"
    REJECT = "REJECT"

    @classmethod
    def parse(cls, value: str) -> "QuotationActionType":
        """
        Parse a client-supplied action ('accept' / 'reject', any case).

        Raises:
            ValueError: If the value is not a known action
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown quotation action: {value!r}") from None

    @property
    def past_tense(self) -> str:
        """'accepted' or 'rejected'."""
        return "accepted" if self is QuotationActionType.ACCEPT else "rejected"


class QuotationOtp(Base, PrimaryKeyMixin):
    """
    One-time code issued for a quotation decision.

    A row is live while consumed_at, superseded_at are both NULL and
    expires_at is in the future. At most one row per (quotation_id, user_id)
    is live at any instant.
    """

    __tablename__ = "quotation_otps"

    quotation_id = Column(
        Integer,
        ForeignKey("quotations.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    action_type = Column(
        Enum(QuotationActionType, name="quotationactiontype", create_type=False),
        nullable=False,
    )
    """Action the requester asked for; applied on confirmation."""

    code_hash = Column(String(64), nullable=False)
    """HMAC-SHA256 hex digest of the code. Never the plaintext."""

    expires_at = Column(DateTime, nullable=False)
    consumed_at = Column(DateTime, nullable=True)
    superseded_at = Column(DateTime, nullable=True)

    created_ip = Column(String(45), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    quotation = relationship("Quotation")
    user = relationship("User")

    __table_args__ = (
        Index("ix_quotation_otps_quotation_user", "quotation_id", "user_id"),
        Index("ix_quotation_otps_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<QuotationOtp(id={self.id}, quotation_id={self.quotation_id}, "
            f"user_id={self.user_id}, action={self.action_type})>"
        )

    @property
    def is_expired(self) -> bool:
        """Check if the code has expired."""
        return utcnow() >= self.expires_at

    @property
    def is_consumed(self) -> bool:
        """Check if the code has been used."""
        return self.consumed_at is not None

    @property
    def is_superseded(self) -> bool:
        """Check if a newer code replaced this one."""
        return self.superseded_at is not None

    @property
    def is_live(self) -> bool:
        """Not consumed, not superseded, not expired."""
        return not (self.is_consumed or self.is_superseded or self.is_expired)

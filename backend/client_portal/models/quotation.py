"""
Quotation model for client pricing decisions.

WHAT: SQLAlchemy model representing a quotation issued to a client
organization through one of its leads.

WHY: Quotations are binding business documents:
1. Uploaded by internal staff (UPLOADED)
2. Sent to the client for review (SENT)
3. Irrevocably accepted or rejected by a client user (ACCEPTED / REJECTED)

HOW: Uses SQLAlchemy 2.0 with:
- Lead relationship (the lead carries the organization)
- Status enum for the decision workflow
- status_changed_at / status_changed_by recording who decided and when
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, TYPE_CHECKING
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Numeric,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship, Mapped

from client_portal.models.base import Base, TimestampMixin, PrimaryKeyMixin

if TYPE_CHECKING:
    from client_portal.models.lead import Lead
    from client_portal.models.user import User


class QuotationStatus(str, Enum):
    """
    Quotation lifecycle status.

    - UPLOADED: Document stored, not yet visible to the client
    - SENT: Sent to the client, awaiting a decision
    - ACCEPTED: Client accepted (terminal)
    - REJECTED: Client rejected (terminal)
    """

    UPLOADED = "UPLOADED"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class Quotation(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Client quotation.

    Attributes:
        id: Primary key
        lead_id: Owning lead (and through it, the organization)
        quotation_number: Human-facing reference
        title: Quotation title
        amount: Total amount
        currency: ISO currency code
        status: Current lifecycle status
        uploaded_by: Internal user who uploaded the document
        sent_at: When the quotation was sent to the client
        status_changed_at: When the client decision was recorded
        status_changed_by: Client user who decided
        client_notes: Notes recorded with the client decision
    """

    __tablename__ = "quotations"

    lead_id: Mapped[int] = Column(
        Integer,
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning lead",
    )

    quotation_number: Mapped[Optional[str]] = Column(
        String(50),
        nullable=True,
        unique=True,
        comment="Human-facing quotation reference",
    )
    title: Mapped[str] = Column(
        String(255),
        nullable=False,
        comment="Quotation title",
    )
    amount: Mapped[Decimal] = Column(
        Numeric(12, 2),
        nullable=False,
        default=0,
        comment="Total amount",
    )
    currency: Mapped[str] = Column(
        String(3),
        nullable=False,
        default="USD",
        comment="ISO 4217 currency code",
    )

    # create_type=False because enum types are created in migrations
    status: Mapped[QuotationStatus] = Column(
        SQLEnum(
            QuotationStatus,
            name="quotationstatus",
            create_type=False,
            values_callable=lambda enum: [e.value for e in enum],
        ),
        nullable=False,
        default=QuotationStatus.UPLOADED,
        index=True,
        comment="Current quotation status",
    )

    uploaded_by: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Internal user who uploaded the quotation",
    )
    sent_at: Mapped[Optional[datetime]] = Column(
        DateTime,
        nullable=True,
        comment="When quotation was sent to the client",
    )
    status_changed_at: Mapped[Optional[datetime]] = Column(
        DateTime,
        nullable=True,
        comment="When the client decision was recorded",
    )
    status_changed_by: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Client user who accepted or rejected",
    )
    client_notes: Mapped[Optional[str]] = Column(
        Text,
        nullable=True,
        comment="Notes recorded with the client decision",
    )

    # Relationships
    lead: Mapped["Lead"] = relationship(
        "Lead",
        back_populates="quotations",
    )
    uploader: Mapped[Optional["User"]] = relationship(
        "User",
        foreign_keys=[uploaded_by],
    )

    def __repr__(self) -> str:
        return f"<Quotation(id={self.id}, title={self.title}, status={self.status})>"

    @property
    def organization_id(self) -> Optional[int]:
        """Organization owning the quotation (via its lead)."""
        return self.lead.org_id if self.lead is not None else None

"""
Quotation action audit model.

WHY: Each confirmed accept/reject appends exactly one row recording who
decided, what, when and from where. The row is independent of the OTP
record and is never updated or deleted.
"""

from sqlalchemy import Column, Integer, String, Enum, ForeignKey, DateTime
from sqlalchemy.orm import relationship

from client_portal.models.base import Base, PrimaryKeyMixin, utcnow
from client_portal.models.quotation_otp import QuotationActionType


class QuotationAction(Base, PrimaryKeyMixin):
    """Append-only record of a confirmed client decision."""

    __tablename__ = "quotation_actions"

    quotation_id = Column(
        Integer,
        ForeignKey("quotations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
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
    performed_at = Column(DateTime, nullable=False, default=utcnow)

    # Request metadata supplied by the caller
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)

    quotation = relationship("Quotation")
    user = relationship("User")

    def __repr__(self) -> str:
        return (
            f"<QuotationAction(id={self.id}, quotation_id={self.quotation_id}, "
            f"user_id={self.user_id}, action={self.action_type})>"
        )

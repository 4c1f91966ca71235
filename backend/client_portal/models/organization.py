"""
Organization model.

WHY: Organizations are the client companies quotations are issued to.
Every quotation reaches its organization through a lead, and a client
user may only act on quotations of their own organization.
"""

from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship

from client_portal.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Organization(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Client organization (tenant).

    The email column is the organization's billing/contact address and is
    one of the stakeholders notified when an OTP is requested.
    """

    __tablename__ = "organizations"

    name = Column(String(255), nullable=False, index=True)

    # Billing / general contact address
    email = Column(String(255), nullable=True)

    # is_active allows soft-deletion while keeping quotation history
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    users = relationship("User", back_populates="organization", lazy="dynamic")
    leads = relationship("Lead", back_populates="organization", lazy="dynamic")

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name})>"

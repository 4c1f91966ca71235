"""
Lead and contact models.

WHY: A lead ties a client organization to the business opportunity a
quotation is issued for. Its primary contact (or the inline contact fields
when no contact row exists) is a stakeholder of every quotation decision.
"""

from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship

from client_portal.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Contact(Base, PrimaryKeyMixin, TimestampMixin):
    """Person at a client organization."""

    __tablename__ = "contacts"

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<Contact(id={self.id}, email={self.email})>"


class Lead(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Business opportunity with a client organization.

    contact_name / contact_email / contact_phone are captured at lead
    creation and used when the lead has no linked Contact.
    """

    __tablename__ = "leads"

    org_id = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    contact_id = Column(
        Integer,
        ForeignKey("contacts.id", ondelete="SET NULL"),
        nullable=True,
    )

    contact_name = Column(String(255), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)

    # Relationships
    organization = relationship("Organization", back_populates="leads")
    contact = relationship("Contact")
    quotations = relationship("Quotation", back_populates="lead", lazy="dynamic")

    @property
    def primary_contact_email(self):
        """Email of the linked contact, else the inline contact email."""
        if self.contact is not None and self.contact.email:
            return self.contact.email
        return self.contact_email

    def __repr__(self) -> str:
        return f"<Lead(id={self.id}, org_id={self.org_id})>"

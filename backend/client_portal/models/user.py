"""
User model.

WHY: Users are either internal staff (ADMIN), who upload and send
quotations, or external client users (CLIENT), who accept or reject them.
Only active CLIENT users may drive the quotation confirmation workflow.
"""

import enum
from sqlalchemy import Column, Integer, String, Enum, ForeignKey, Boolean
from sqlalchemy.orm import relationship

from client_portal.models.base import Base, TimestampMixin, PrimaryKeyMixin


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    WHY: Enum ensures only valid roles can be assigned.
    """

    ADMIN = "ADMIN"  # Internal staff of the issuing organization
    CLIENT = "CLIENT"  # External client with org-scoped access


class User(Base, PrimaryKeyMixin, TimestampMixin):
    """
    User model representing individuals who use the platform.

    org_id is NULL for internal staff. lead_id narrows a client user to a
    single lead of their organization when set.
    """

    __tablename__ = "users"

    # User identification
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)

    # Authentication
    # hashed_password is nullable for accounts that have not set one yet
    hashed_password = Column(String(255), nullable=True)

    # Authorization
    # create_type=False because the enum type is created explicitly in migration 001
    role = Column(Enum(UserRole, name="userrole", create_type=False), nullable=False, default=UserRole.CLIENT)

    # Multi-tenancy
    org_id = Column(Integer, ForeignKey("organizations.id"), nullable=True, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="SET NULL"), nullable=True, index=True)

    # Account status
    is_active = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    # Relationships
    organization = relationship("Organization", back_populates="users")
    lead = relationship("Lead", foreign_keys=[lead_id])

    @property
    def full_name(self) -> str:
        """Display name, falling back to the email address."""
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.email

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

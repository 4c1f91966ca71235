"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation and makes it easier to import models elsewhere.
"""

from client_portal.models.base import Base, TimestampMixin, PrimaryKeyMixin, utcnow
from client_portal.models.organization import Organization
from client_portal.models.lead import Contact, Lead
from client_portal.models.user import User, UserRole
from client_portal.models.quotation import Quotation, QuotationStatus
from client_portal.models.quotation_otp import QuotationOtp, QuotationActionType
from client_portal.models.quotation_action import QuotationAction

__all__ = [
    "Base",
    "TimestampMixin",
    "PrimaryKeyMixin",
    "utcnow",
    "Organization",
    "Contact",
    "Lead",
    "User",
    "UserRole",
    "Quotation",
    "QuotationStatus",
    "QuotationOtp",
    "QuotationActionType",
    "QuotationAction",
]

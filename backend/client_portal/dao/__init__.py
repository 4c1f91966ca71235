"""
Data Access Object (DAO) package.

WHY: DAOs provide a clean separation between database operations and business logic,
making the codebase more testable and maintainable.
"""

from client_portal.dao.base import BaseDAO
from client_portal.dao.user import UserDAO
from client_portal.dao.quotation import QuotationDAO
from client_portal.dao.quotation_otp import QuotationOtpDAO
from client_portal.dao.quotation_action import QuotationActionDAO

__all__ = [
    "BaseDAO",
    "UserDAO",
    "QuotationDAO",
    "QuotationOtpDAO",
    "QuotationActionDAO",
]

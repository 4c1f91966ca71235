"""Database package"""

from client_portal.db.session import AsyncSessionLocal, engine, transaction
from client_portal.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "transaction"]

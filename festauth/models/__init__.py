"""SQLAlchemy ORM models."""

from festauth.models.base import Base
from festauth.models.user import User

__all__ = ["Base", "User"]

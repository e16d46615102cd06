"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.post import Post, PostStatus, PostVisibility
from models.user import ADMIN_ROLES, User, UserRole

__all__ = [
    "ADMIN_ROLES",
    "Base",
    "Post",
    "PostStatus",
    "PostVisibility",
    "TimestampMixin",
    "UUIDv7Mixin",
    "User",
    "UserRole",
]

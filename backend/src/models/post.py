"""Post model for user-authored content."""
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDv7Mixin


class PostStatus(StrEnum):
    """Publishing state of a post."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class PostVisibility(StrEnum):
    """Audience a post is shown to."""

    PUBLIC = "public"
    FOLLOWERS = "followers"
    PRIVATE = "private"


class Post(Base, UUIDv7Mixin, TimestampMixin):
    """
    Post model.

    ``author_id`` is set at creation and never reassigned. No ON DELETE
    cascade: users are soft-deleted, so a post outlives its author's
    deactivation and is rendered with an unavailable author.
    """

    __tablename__ = "posts"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'published', 'archived')", name="ck_posts_status",
        ),
        CheckConstraint(
            "visibility IN ('public', 'followers', 'private')", name="ck_posts_visibility",
        ),
        # Profile stats and recent-post queries filter by author + status, newest first
        Index("ix_posts_author_status_created", "author_id", "status", "created_at"),
    )

    author_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), index=True)
    title: Mapped[str | None] = mapped_column(String(300), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=PostStatus.PUBLISHED, server_default=PostStatus.PUBLISHED,
    )
    visibility: Mapped[str] = mapped_column(
        String(20), default=PostVisibility.PUBLIC, server_default=PostVisibility.PUBLIC,
    )

    like_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    comment_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    share_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    view_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None, index=True,
    )

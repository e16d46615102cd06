"""Pydantic schemas for post endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import field_validator

from models.post import PostStatus, PostVisibility
from schemas.envelope import CamelModel
from schemas.user import UserSummary
from schemas.validators import validate_post_content, validate_post_title


class PostCreate(CamelModel):
    """Schema for creating a post. The author is always the caller."""

    title: str | None = None
    content: str
    status: PostStatus = PostStatus.PUBLISHED
    visibility: PostVisibility = PostVisibility.PUBLIC

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        """Validate title length."""
        return validate_post_title(v)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        """Validate content is present and within limits."""
        return validate_post_content(v)


class PostUpdate(CamelModel):
    """Schema for updating a post; omitted fields are left unchanged."""

    title: str | None = None
    content: str | None = None
    status: PostStatus | None = None
    visibility: PostVisibility | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        """Validate title length."""
        return validate_post_title(v)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str | None) -> str | None:
        """Validate content is present and within limits."""
        return validate_post_content(v)


class PostSummary(CamelModel):
    """Post as embedded in profiles and post lists."""

    id: UUID
    title: str | None
    content: str
    status: str
    visibility: str
    like_count: int
    comment_count: int
    share_count: int
    view_count: int
    created_at: datetime


class PostDetail(PostSummary):
    """Single post with its author resolved (or a placeholder)."""

    author: UserSummary
    updated_at: datetime


class PostListResponse(CamelModel):
    """Paginated post list."""

    items: list[PostSummary]
    total: int
    offset: int
    limit: int
    has_more: bool


class EngagementResponse(CamelModel):
    """New value of a post counter after a like, view or share."""

    post_id: UUID
    counter: str
    count: int

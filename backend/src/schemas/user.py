"""Pydantic schemas for user and follow endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import field_validator

from models.user import User
from schemas.envelope import CamelModel
from schemas.validators import normalize_name_part, validate_avatar, validate_bio_length

UNAVAILABLE_USER_NAME = "unavailable user"


class UserUpdate(CamelModel):
    """
    Profile fields a user (or an admin) may change.

    Username, email, role and the edge sets are not editable here. The edge
    sets change only through the follow service.
    """

    first_name: str | None = None
    last_name: str | None = None
    bio: str | None = None
    avatar: str | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def normalize_names(cls, v: str | None) -> str | None:
        """Trim name parts."""
        return normalize_name_part(v)

    @field_validator("bio")
    @classmethod
    def validate_bio(cls, v: str | None) -> str | None:
        """Validate bio length."""
        return validate_bio_length(v)

    @field_validator("avatar")
    @classmethod
    def validate_avatar_url(cls, v: str | None) -> str | None:
        """Validate avatar reference."""
        return validate_avatar(v)


class UserSummary(CamelModel):
    """
    Compact user card used in follower lists and as post author.

    When the referenced user no longer exists or is inactive, ``available`` is
    False and every field except ``id`` is a placeholder.
    """

    id: UUID
    username: str | None
    full_name: str
    avatar: str = ""
    bio: str = ""
    followers_count: int = 0
    following_count: int = 0
    available: bool = True

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        """Build a summary from a loaded user."""
        return cls(
            id=user.id,
            username=user.username,
            full_name=user.full_name,
            avatar=user.avatar or "",
            bio=user.bio or "",
            followers_count=user.followers_count,
            following_count=user.following_count,
            available=user.is_active,
        )

    @classmethod
    def unavailable(cls, user_id: UUID) -> "UserSummary":
        """Placeholder for a dangling or deactivated reference."""
        return cls(id=user_id, username=None, full_name=UNAVAILABLE_USER_NAME, available=False)

    @classmethod
    def resolve(cls, user_id: UUID, user: User | None) -> "UserSummary":
        """Summary if the user exists and is active, placeholder otherwise."""
        if user is None or not user.is_active:
            return cls.unavailable(user_id)
        return cls.from_user(user)


class UserPrivate(CamelModel):
    """Full user record, returned only to the user themselves or an admin."""

    id: UUID
    username: str
    email: str
    first_name: str | None
    last_name: str | None
    bio: str
    avatar: str
    role: str
    is_active: bool
    followers_count: int
    following_count: int
    created_at: datetime
    updated_at: datetime


class UserListResponse(CamelModel):
    """Paginated list of users: followers, following or search results."""

    items: list[UserSummary]
    total: int
    offset: int
    limit: int
    has_more: bool


class FollowResponse(CamelModel):
    """Counts for both parties after a follow or unfollow."""

    following: bool
    current_user_following_count: int
    target_user_followers_count: int


class FollowStatusResponse(CamelModel):
    """Edge state between the caller and another user."""

    is_following: bool
    follows_you: bool

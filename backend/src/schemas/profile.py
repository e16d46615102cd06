"""Schemas for the aggregated profile view."""
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from schemas.envelope import CamelModel
from schemas.post import PostSummary


class RelationshipStatus(StrEnum):
    """Edge state between a viewer and the profile subject, from the viewer's side."""

    SELF = "self"
    MUTUAL = "mutual"
    FOLLOWING = "following"
    FOLLOWER = "follower"
    NONE = "none"


class ProfileStats(CamelModel):
    """Aggregates over the subject's published posts."""

    posts: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0
    views: int = 0
    # Two-decimal string, "0.00" when there are no views
    engagement_rate: str = "0.00"


class ProfileView(CamelModel):
    """
    Denormalized, cacheable profile projection.

    Derived from the user record and post aggregates; never persisted. When
    adding, removing or renaming fields, bump CACHE_SCHEMA_VERSION in
    services/cache_invalidation.py so entries with the old shape are ignored.
    """

    id: UUID
    username: str
    first_name: str | None
    last_name: str | None
    full_name: str
    bio: str
    avatar: str
    role: str
    is_active: bool
    created_at: datetime
    # Present only when the viewer is the subject
    email: str | None = None

    followers_count: int
    following_count: int
    is_own_profile: bool
    is_following: bool
    follows_you: bool
    can_edit: bool
    can_follow: bool
    relationship_status: RelationshipStatus

    stats: ProfileStats
    posts: list[PostSummary]

"""User model - identity plus the node of the follow graph."""
from enum import StrEnum
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Index, String, Text, text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDv7Mixin


class UserRole(StrEnum):
    """Roles recognized by authorization checks."""

    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})


class User(Base, UUIDv7Mixin, TimestampMixin):
    """
    User model.

    Follow edges are stored redundantly: ``following`` on the actor and
    ``followers`` on the target. Both are id arrays mutated only through the
    set-membership operations of the graph store, never assigned wholesale.
    Ids in either array may point at users that have since been deactivated.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("NOT (id = ANY(following))", name="ck_users_no_self_following"),
        CheckConstraint("NOT (id = ANY(followers))", name="ck_users_no_self_follower"),
        # "who follows X" lookups scan the arrays with @>
        Index("ix_users_followers_gin", "followers", postgresql_using="gin"),
        Index("ix_users_following_gin", "following", postgresql_using="gin"),
    )

    # Stored lower-case; lookups lower-case their input
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bio: Mapped[str] = mapped_column(Text, default="", server_default="")
    avatar: Mapped[str] = mapped_column(Text, default="", server_default="")
    role: Mapped[str] = mapped_column(
        String(20), default=UserRole.USER, server_default=UserRole.USER,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=text("true"), index=True,
    )

    followers: Mapped[list[UUID]] = mapped_column(
        ARRAY(PG_UUID(as_uuid=True)),
        default=list,
        server_default=text("'{}'"),
        nullable=False,
    )
    following: Mapped[list[UUID]] = mapped_column(
        ARRAY(PG_UUID(as_uuid=True)),
        default=list,
        server_default=text("'{}'"),
        nullable=False,
    )

    @property
    def followers_count(self) -> int:
        """Number of users following this user."""
        return len(self.followers or [])

    @property
    def following_count(self) -> int:
        """Number of users this user follows."""
        return len(self.following or [])

    @property
    def is_admin(self) -> bool:
        """True for admin and super_admin roles."""
        return self.role in ADMIN_ROLES

    @property
    def full_name(self) -> str:
        """First and last name joined, blank parts dropped."""
        return " ".join(p for p in (self.first_name, self.last_name) if p)

"""
Storage interface for users, follow edges and posts.

Services depend on the ``GraphStore`` protocol rather than on a session, so
the follow-graph logic can be exercised against an in-memory fake. Follow
edges are mutated only through ``add_to_set`` / ``remove_from_set``: each is a
single atomic, idempotent statement on one row, which narrows (but does not
close) the race window between two concurrent requests touching the same edge.
"""
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import any_, case, func, literal, or_, select, update
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models.post import Post, PostStatus, PostVisibility
from models.user import User
from services.exceptions import StoreError


class EdgeField(StrEnum):
    """The two id-set columns that together materialize a follow edge."""

    FOLLOWERS = "followers"
    FOLLOWING = "following"


class EngagementCounter(StrEnum):
    """Post counters that readers can bump."""

    LIKES = "like_count"
    VIEWS = "view_count"
    SHARES = "share_count"


@dataclass
class PostTotals:
    """Raw sums over an author's published, non-deleted posts."""

    posts: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0
    views: int = 0


class GraphStore(Protocol):
    """Persistence operations used by the graph, profile, user and post services."""

    async def get_user(self, user_id: UUID) -> User | None: ...

    async def get_user_by_username(self, username: str) -> User | None: ...

    async def get_users(self, user_ids: Sequence[UUID]) -> list[User]: ...

    async def update_user(self, user_id: UUID, fields: dict[str, Any]) -> User | None: ...

    async def search_users(
        self,
        query: str | None,
        *,
        include_inactive: bool = False,
        offset: int,
        limit: int,
    ) -> tuple[list[User], int]:
        """
        Users whose username, first or last name contains ``query`` (case-insensitive),
        most-followed first, plus the total count. Without a query every user is
        listed, newest first.
        """
        ...

    async def add_to_set(self, user_id: UUID, field: EdgeField, member_id: UUID) -> int | None:
        """
        Add ``member_id`` to the user's id set if absent.

        Returns the set size after the operation, or None if the user does not exist.
        Adding a member that is already present leaves the set unchanged.
        """
        ...

    async def remove_from_set(
        self, user_id: UUID, field: EdgeField, member_id: UUID,
    ) -> int | None:
        """
        Remove ``member_id`` from the user's id set if present.

        Returns the set size after the operation, or None if the user does not exist.
        """
        ...

    async def get_post(self, post_id: UUID) -> Post | None: ...

    async def create_post(self, author_id: UUID, fields: dict[str, Any]) -> Post: ...

    async def update_post(self, post_id: UUID, fields: dict[str, Any]) -> Post | None: ...

    async def increment_post_counter(
        self, post_id: UUID, counter: EngagementCounter,
    ) -> int | None:
        """
        Add one to a counter of a live post in a single statement.

        Returns the new value, or None if the post does not exist or is deleted.
        """
        ...

    async def post_totals(self, author_id: UUID) -> PostTotals: ...

    async def list_published_posts(
        self,
        author_id: UUID,
        *,
        visibilities: Sequence[str] = (PostVisibility.PUBLIC,),
        offset: int,
        limit: int,
    ) -> tuple[list[Post], int]:
        """
        Published, non-deleted posts by the author whose visibility is one of
        ``visibilities``, newest first, plus the total count.
        """
        ...


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Translate database failures into StoreError."""
    try:
        yield
    except SQLAlchemyError as e:
        raise StoreError(f"Store operation '{operation}' failed") from e


def _published(author_id: UUID) -> tuple:
    return (
        Post.author_id == author_id,
        Post.status == PostStatus.PUBLISHED,
        Post.deleted_at.is_(None),
    )


class SqlGraphStore:
    """
    GraphStore backed by the request's AsyncSession.

    Most writes only flush; the session dependency commits once at request end.
    Edge writes are the exception: each set operation commits on its own, so
    the two halves of a follow edge are independent units. A failure of the
    second one leaves the first in place, which is what PartialGraphUpdateError
    reports.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_user(self, user_id: UUID) -> User | None:
        """Load a user, refreshing any stale instance held by the session."""
        with _store_errors("get_user"):
            result = await self._db.execute(
                select(User)
                .where(User.id == user_id)
                .execution_options(populate_existing=True),
            )
            return result.scalar_one_or_none()

    async def get_user_by_username(self, username: str) -> User | None:
        """Case-insensitive username lookup."""
        with _store_errors("get_user_by_username"):
            result = await self._db.execute(
                select(User)
                .where(User.username == username.strip().lower())
                .execution_options(populate_existing=True),
            )
            return result.scalar_one_or_none()

    async def get_users(self, user_ids: Sequence[UUID]) -> list[User]:
        """Load the users that exist among ``user_ids`` (order not preserved)."""
        if not user_ids:
            return []
        with _store_errors("get_users"):
            result = await self._db.execute(
                select(User).where(User.id.in_(list(user_ids))),
            )
            return list(result.scalars().all())

    async def update_user(self, user_id: UUID, fields: dict[str, Any]) -> User | None:
        """Apply scalar field updates. Edge sets are not writable here."""
        user = await self.get_user(user_id)
        if user is None:
            return None
        with _store_errors("update_user"):
            for name, value in fields.items():
                setattr(user, name, value)
            user.updated_at = func.clock_timestamp()
            await self._db.flush()
            await self._db.refresh(user)
        return user

    async def search_users(
        self,
        query: str | None,
        *,
        include_inactive: bool = False,
        offset: int,
        limit: int,
    ) -> tuple[list[User], int]:
        """ILIKE over username and names; most-followed first when searching."""
        conditions = []
        if not include_inactive:
            conditions.append(User.is_active.is_(True))
        term = (query or "").strip()
        if term:
            conditions.append(or_(
                User.username.icontains(term, autoescape=True),
                User.first_name.icontains(term, autoescape=True),
                User.last_name.icontains(term, autoescape=True),
            ))
            order_by = (func.cardinality(User.followers).desc(), User.username)
        else:
            order_by = (User.created_at.desc(), User.id.desc())

        with _store_errors("search_users"):
            total = await self._db.scalar(select(func.count(User.id)).where(*conditions))
            result = await self._db.execute(
                select(User)
                .where(*conditions)
                .order_by(*order_by)
                .offset(offset)
                .limit(limit),
            )
            return list(result.scalars().all()), int(total or 0)

    async def add_to_set(self, user_id: UUID, field: EdgeField, member_id: UUID) -> int | None:
        """Single-statement add-if-absent on a UUID[] column."""
        column = getattr(User, field.value)
        member = literal(member_id, PG_UUID(as_uuid=True))
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values({
                field.value: case(
                    (member == any_(column), column),
                    else_=func.array_append(column, member),
                ),
                "updated_at": func.clock_timestamp(),
            })
            .returning(func.cardinality(column))
            .execution_options(synchronize_session=False)
        )
        with _store_errors("add_to_set"):
            size = (await self._db.execute(stmt)).scalar_one_or_none()
            await self._db.commit()
        return size

    async def remove_from_set(
        self, user_id: UUID, field: EdgeField, member_id: UUID,
    ) -> int | None:
        """Single-statement remove on a UUID[] column (array_remove is a no-op if absent)."""
        column = getattr(User, field.value)
        member = literal(member_id, PG_UUID(as_uuid=True))
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values({
                field.value: func.array_remove(column, member),
                "updated_at": func.clock_timestamp(),
            })
            .returning(func.cardinality(column))
            .execution_options(synchronize_session=False)
        )
        with _store_errors("remove_from_set"):
            size = (await self._db.execute(stmt)).scalar_one_or_none()
            await self._db.commit()
        return size

    async def get_post(self, post_id: UUID) -> Post | None:
        """Load a post including soft-deleted ones; callers decide visibility."""
        with _store_errors("get_post"):
            result = await self._db.execute(
                select(Post)
                .where(Post.id == post_id)
                .execution_options(populate_existing=True),
            )
            return result.scalar_one_or_none()

    async def create_post(self, author_id: UUID, fields: dict[str, Any]) -> Post:
        """Insert a post owned by ``author_id``."""
        post = Post(author_id=author_id, **fields)
        with _store_errors("create_post"):
            self._db.add(post)
            await self._db.flush()
            await self._db.refresh(post)
        return post

    async def update_post(self, post_id: UUID, fields: dict[str, Any]) -> Post | None:
        """Apply field updates to a post. ``author_id`` is never changed."""
        post = await self.get_post(post_id)
        if post is None:
            return None
        with _store_errors("update_post"):
            for name, value in fields.items():
                if name == "author_id":
                    continue
                setattr(post, name, value)
            post.updated_at = func.clock_timestamp()
            await self._db.flush()
            await self._db.refresh(post)
        return post

    async def increment_post_counter(
        self, post_id: UUID, counter: EngagementCounter,
    ) -> int | None:
        """One ``UPDATE ... SET col = col + 1``; concurrent bumps never lose updates."""
        column = getattr(Post, counter.value)
        stmt = (
            update(Post)
            .where(Post.id == post_id, Post.deleted_at.is_(None))
            .values({counter.value: column + 1})
            .returning(column)
            .execution_options(synchronize_session=False)
        )
        with _store_errors("increment_post_counter"):
            return (await self._db.execute(stmt)).scalar_one_or_none()

    async def post_totals(self, author_id: UUID) -> PostTotals:
        """Aggregate engagement counters in one query."""
        stmt = select(
            func.count(Post.id),
            func.coalesce(func.sum(Post.like_count), 0),
            func.coalesce(func.sum(Post.comment_count), 0),
            func.coalesce(func.sum(Post.share_count), 0),
            func.coalesce(func.sum(Post.view_count), 0),
        ).where(*_published(author_id))
        with _store_errors("post_totals"):
            row = (await self._db.execute(stmt)).one()
        return PostTotals(
            posts=int(row[0]),
            likes=int(row[1]),
            comments=int(row[2]),
            shares=int(row[3]),
            views=int(row[4]),
        )

    async def list_published_posts(
        self,
        author_id: UUID,
        *,
        visibilities: Sequence[str] = (PostVisibility.PUBLIC,),
        offset: int,
        limit: int,
    ) -> tuple[list[Post], int]:
        """Page of published posts, newest first (id breaks created_at ties)."""
        conditions = (
            *_published(author_id),
            Post.visibility.in_([str(v) for v in visibilities]),
        )
        with _store_errors("list_published_posts"):
            total = await self._db.scalar(select(func.count(Post.id)).where(*conditions))
            result = await self._db.execute(
                select(Post)
                .where(*conditions)
                .order_by(Post.created_at.desc(), Post.id.desc())
                .offset(offset)
                .limit(limit),
            )
            return list(result.scalars().all()), int(total or 0)

"""Service layer for posts."""
import logging
from datetime import UTC, datetime
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from core.redis import CacheClient, CacheUnavailableError
from models.post import Post, PostStatus, PostVisibility
from models.user import User
from schemas.post import (
    EngagementResponse,
    PostCreate,
    PostDetail,
    PostListResponse,
    PostSummary,
    PostUpdate,
)
from schemas.user import UserSummary
from services.cache_invalidation import CacheInvalidationPolicy, EntityType, post_cache_key
from services.exceptions import AuthorizationError, NotFoundError, ValidationError
from services.graph_store import EngagementCounter, GraphStore

logger = logging.getLogger(__name__)

POST_CACHE_TTL = 300


def readable_visibilities(author: User, viewer: User | None) -> tuple[PostVisibility, ...]:
    """
    Post visibilities of ``author`` that ``viewer`` may read.

    Everyone reads public posts, followers also read followers-only posts, and
    the author and admins read everything.
    """
    if viewer is not None and (viewer.id == author.id or viewer.is_admin):
        return tuple(PostVisibility)
    if viewer is not None and viewer.id in (author.followers or []):
        return (PostVisibility.PUBLIC, PostVisibility.FOLLOWERS)
    return (PostVisibility.PUBLIC,)


def _is_public(post: Post) -> bool:
    return post.status == PostStatus.PUBLISHED and post.visibility == PostVisibility.PUBLIC


class PostService:
    """
    Post CRUD and engagement counters. Every mutation invalidates the post
    entry and the author's profile, whose stats and recent-post list embed
    the post.
    """

    def __init__(
        self,
        store: GraphStore,
        cache: CacheClient,
        invalidation: CacheInvalidationPolicy,
        ttl: int = POST_CACHE_TTL,
    ) -> None:
        self._store = store
        self._cache = cache
        self._invalidation = invalidation
        self._ttl = ttl

    async def create_post(self, author: User, data: PostCreate) -> PostDetail:
        """Create a post owned by ``author``."""
        post = await self._store.create_post(author.id, data.model_dump())
        await self._invalidate(post, author)
        logger.info("post_created", extra={"post_id": str(post.id), "author_id": str(author.id)})
        return self._detail(post, author)

    async def get_post(self, post_id: UUID, requester: User | None = None) -> PostDetail:
        """
        Post detail. Only published public posts are cached. Drafts and
        archived posts are visible to their author and admins only; published
        followers-only posts also to the author's followers.

        The author is resolved on every read, cached or not, so a deactivated
        author shows as unavailable without waiting for the entry to expire.

        Raises:
            NotFoundError: If the post does not exist, is deleted, or is not
                visible to the requester.
        """
        key = post_cache_key(post_id)
        cached = await self._read_cache(key)
        if cached is not None:
            author = await self._store.get_user(cached.author.id)
            return cached.model_copy(
                update={"author": UserSummary.resolve(cached.author.id, author)},
            )

        post, author = await self._get_readable(post_id, requester)
        detail = self._detail(post, author)
        if _is_public(post):
            await self._write_cache(key, detail)
        return detail

    async def update_post(self, post_id: UUID, requester: User, data: PostUpdate) -> PostDetail:
        """
        Update a post (author only).

        Raises:
            NotFoundError: If the post does not exist or is deleted.
            AuthorizationError: If the requester is not the author.
            ValidationError: If no field was provided.
        """
        post = await self._get_live(post_id)
        if post.author_id != requester.id:
            raise AuthorizationError
        updates = data.model_dump(exclude_unset=True)
        if updates.get("content", ...) is None:
            raise ValidationError("Content cannot be empty")
        # Explicit null for an enum field means "leave unchanged"
        for field in ("status", "visibility"):
            if field in updates and updates[field] is None:
                del updates[field]
        if not updates:
            raise ValidationError("No fields to update")

        updated = await self._store.update_post(post_id, updates)
        if updated is None:
            raise NotFoundError("post", post_id)
        await self._invalidate(updated, requester)
        return self._detail(updated, requester)

    async def delete_post(self, post_id: UUID, requester: User) -> None:
        """
        Soft-delete a post (author or admin).

        Raises:
            NotFoundError: If the post does not exist or is already deleted.
            AuthorizationError: If the requester is neither author nor admin.
        """
        post = await self._get_live(post_id)
        if not self._can_manage(post, requester):
            raise AuthorizationError
        await self._store.update_post(post_id, {"deleted_at": datetime.now(UTC)})
        author = requester if requester.id == post.author_id else (
            await self._store.get_user(post.author_id)
        )
        await self._invalidate(post, author)
        logger.info("post_deleted", extra={"post_id": str(post_id), "by": str(requester.id)})

    async def record_engagement(
        self,
        post_id: UUID,
        counter: EngagementCounter,
        requester: User | None = None,
    ) -> EngagementResponse:
        """
        Bump a like, view or share counter on a post the requester can read.

        Counters are plain tallies: repeated likes from one user each count.

        Raises:
            NotFoundError: If the post does not exist, is deleted, is not
                published, or is not visible to the requester.
        """
        post, author = await self._get_readable(post_id, requester)
        if post.status != PostStatus.PUBLISHED:
            raise NotFoundError("post", post_id)

        count = await self._store.increment_post_counter(post_id, counter)
        if count is None:
            raise NotFoundError("post", post_id)
        await self._invalidate(post, author)
        logger.debug(
            "post_engagement post_id=%s counter=%s count=%d", post_id, counter.value, count,
        )
        return EngagementResponse(post_id=post_id, counter=counter.value, count=count)

    async def list_user_posts(
        self,
        username: str,
        *,
        offset: int,
        limit: int,
        requester: User | None = None,
    ) -> PostListResponse:
        """
        Published posts by ``username`` that the requester may read, newest first.

        Raises:
            NotFoundError: If the user does not exist or is inactive.
        """
        user = await self._store.get_user_by_username(username)
        if user is None or not user.is_active:
            raise NotFoundError("user", username)
        posts, total = await self._store.list_published_posts(
            user.id,
            visibilities=readable_visibilities(user, requester),
            offset=offset,
            limit=limit,
        )
        return PostListResponse(
            items=[PostSummary.model_validate(p) for p in posts],
            total=total,
            offset=offset,
            limit=limit,
            has_more=offset + len(posts) < total,
        )

    async def _get_live(self, post_id: UUID) -> Post:
        post = await self._store.get_post(post_id)
        if post is None or post.deleted_at is not None:
            raise NotFoundError("post", post_id)
        return post

    async def _get_readable(
        self, post_id: UUID, requester: User | None,
    ) -> tuple[Post, User | None]:
        """Live post and its author, if the requester may read the post."""
        post = await self._get_live(post_id)
        author = await self._store.get_user(post.author_id)
        if self._can_manage(post, requester):
            return post, author
        visible = (
            readable_visibilities(author, requester) if author is not None
            else (PostVisibility.PUBLIC,)
        )
        if post.status != PostStatus.PUBLISHED or post.visibility not in visible:
            raise NotFoundError("post", post_id)
        return post, author

    @staticmethod
    def _can_manage(post: Post, requester: User | None) -> bool:
        return requester is not None and (requester.id == post.author_id or requester.is_admin)

    @staticmethod
    def _detail(post: Post, author: User | None) -> PostDetail:
        return PostDetail(
            **PostSummary.model_validate(post).model_dump(),
            author=UserSummary.resolve(post.author_id, author),
            updated_at=post.updated_at,
        )

    async def _invalidate(self, post: Post, author: User | None) -> None:
        await self._invalidation.invalidate(EntityType.POST, post.id)
        await self._invalidation.invalidate(
            EntityType.USER,
            post.author_id,
            username=author.username if author is not None else None,
        )

    async def _read_cache(self, key: str) -> PostDetail | None:
        try:
            data = await self._cache.get(key)
        except (CacheUnavailableError, TimeoutError) as e:
            logger.warning("post_cache_unavailable", extra={"key": key, "error": str(e)})
            return None
        if not data:
            return None
        try:
            return PostDetail.model_validate_json(data)
        except PydanticValidationError:
            logger.warning("post_cache_unreadable", extra={"key": key})
            return None

    async def _write_cache(self, key: str, detail: PostDetail) -> None:
        try:
            await self._cache.set(key, detail.model_dump_json(), self._ttl)
        except (CacheUnavailableError, TimeoutError) as e:
            logger.warning("post_cache_unavailable", extra={"key": key, "error": str(e)})

"""Service layer for user records and follower lists."""
import logging
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from core.redis import CacheClient, CacheUnavailableError
from models.user import User
from schemas.user import UserListResponse, UserPrivate, UserSummary, UserUpdate
from services.cache_invalidation import (
    CacheInvalidationPolicy,
    EntityType,
    search_cache_key,
    user_cache_key,
)
from services.exceptions import AuthorizationError, NotFoundError, ValidationError
from services.graph_store import EdgeField, GraphStore

logger = logging.getLogger(__name__)

USER_CACHE_TTL = 600
SEARCH_CACHE_TTL = 60

# Upper bound on viewer-keyed profile variants purged when a user is
# (de)activated; the remaining variants age out via TTL.
MAX_VIEWER_VARIANTS = 100


def _require_self_or_admin(user_id: UUID, requester: User) -> None:
    if requester.id != user_id and not requester.is_admin:
        raise AuthorizationError


class UserService:
    """Reads and updates user records; edge sets are owned by FollowGraphService."""

    def __init__(
        self,
        store: GraphStore,
        cache: CacheClient,
        invalidation: CacheInvalidationPolicy,
        ttl: int = USER_CACHE_TTL,
        search_ttl: int = SEARCH_CACHE_TTL,
    ) -> None:
        self._store = store
        self._cache = cache
        self._invalidation = invalidation
        self._ttl = ttl
        self._search_ttl = search_ttl

    async def get_user(self, user_id: UUID, requester: User) -> UserPrivate:
        """
        Private user record, for the user themselves or an admin.

        Raises:
            AuthorizationError: If the requester is neither the user nor an admin.
            NotFoundError: If the user does not exist.
        """
        _require_self_or_admin(user_id, requester)
        key = user_cache_key(user_id)
        try:
            data = await self._cache.get(key)
        except (CacheUnavailableError, TimeoutError) as e:
            logger.warning("user_cache_unavailable", extra={"key": key, "error": str(e)})
            data = None
        if data:
            try:
                return UserPrivate.model_validate_json(data)
            except PydanticValidationError:
                logger.warning("user_cache_unreadable", extra={"key": key})

        user = await self._store.get_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        record = UserPrivate.model_validate(user)
        try:
            await self._cache.set(key, record.model_dump_json(), self._ttl)
        except (CacheUnavailableError, TimeoutError) as e:
            logger.warning("user_cache_unavailable", extra={"key": key, "error": str(e)})
        return record

    async def update_user(self, user_id: UUID, requester: User, data: UserUpdate) -> UserPrivate:
        """
        Update profile fields, then invalidate the user's cached projections.

        Raises:
            AuthorizationError: If the requester is neither the user nor an admin.
            ValidationError: If no updatable field was provided.
            NotFoundError: If the user does not exist.
        """
        _require_self_or_admin(user_id, requester)
        # exclude_unset distinguishes "not provided" from "set to null"
        updates = data.model_dump(exclude_unset=True)
        for field in ("bio", "avatar"):
            if field in updates and updates[field] is None:
                updates[field] = ""
        if not updates:
            raise ValidationError("No fields to update")

        user = await self._store.update_user(user_id, updates)
        if user is None:
            raise NotFoundError("user", user_id)
        await self._invalidation.invalidate(EntityType.USER, user.id, username=user.username)
        logger.info(
            "user_updated",
            extra={"user_id": str(user_id), "fields": sorted(updates)},
        )
        return UserPrivate.model_validate(user)

    async def set_active(self, user_id: UUID, requester: User, *, active: bool) -> UserPrivate:
        """
        Deactivate or reactivate a user (admin only).

        Deactivation is a soft delete: the record and every edge pointing at it
        stay in place, read paths render it as unavailable.

        Raises:
            AuthorizationError: If the requester is not an admin.
            ValidationError: If an admin tries to deactivate themselves.
            NotFoundError: If the user does not exist.
        """
        if not requester.is_admin:
            raise AuthorizationError
        if requester.id == user_id and not active:
            raise ValidationError("Admins cannot deactivate their own account")

        user = await self._store.update_user(user_id, {"is_active": active})
        if user is None:
            raise NotFoundError("user", user_id)
        # Followers are the viewers most likely to hold a cached copy
        viewers = list(user.followers or [])[:MAX_VIEWER_VARIANTS]
        await self._invalidation.invalidate(
            EntityType.USER, user.id, username=user.username, viewer_ids=viewers,
        )
        logger.info(
            "user_activation_changed",
            extra={"user_id": str(user_id), "active": active, "by": str(requester.id)},
        )
        return UserPrivate.model_validate(user)

    async def search_users(
        self,
        search: str | None,
        *,
        offset: int,
        limit: int,
        requester: User | None = None,
        include_inactive: bool = False,
    ) -> UserListResponse:
        """
        Find users by username, first or last name (case-insensitive substring).

        With a search term the most-followed users come first; without one all
        users are listed, newest first. Pages are cached for a short TTL and not
        invalidated by mutations.

        Raises:
            AuthorizationError: If a non-admin asks for inactive users.
        """
        if include_inactive and not (requester and requester.is_admin):
            raise AuthorizationError("Only admins can list inactive users")
        term = (search or "").strip()
        key = search_cache_key(
            term, include_inactive=include_inactive, offset=offset, limit=limit,
        )
        try:
            data = await self._cache.get(key)
        except (CacheUnavailableError, TimeoutError) as e:
            logger.warning("search_cache_unavailable", extra={"key": key, "error": str(e)})
            data = None
        if data:
            try:
                return UserListResponse.model_validate_json(data)
            except PydanticValidationError:
                logger.warning("search_cache_unreadable", extra={"key": key})

        users, total = await self._store.search_users(
            term or None, include_inactive=include_inactive, offset=offset, limit=limit,
        )
        page = UserListResponse(
            items=[UserSummary.from_user(u) for u in users],
            total=total,
            offset=offset,
            limit=limit,
            has_more=offset + len(users) < total,
        )
        try:
            await self._cache.set(key, page.model_dump_json(), self._search_ttl)
        except (CacheUnavailableError, TimeoutError) as e:
            logger.warning("search_cache_unavailable", extra={"key": key, "error": str(e)})
        return page

    async def list_edges(
        self,
        user_id: UUID,
        field: EdgeField,
        *,
        offset: int,
        limit: int,
        requester: User | None = None,
    ) -> UserListResponse:
        """
        Page through a user's followers or following, most recent edge first.

        Ids that no longer resolve to an active user are rendered as
        placeholders rather than dropped, so totals stay consistent with counts.

        Raises:
            NotFoundError: If the user does not exist, or is inactive and the
                requester is not an admin.
        """
        user = await self._store.get_user(user_id)
        if user is None or (not user.is_active and not (requester and requester.is_admin)):
            raise NotFoundError("user", user_id)

        ids = list(reversed(getattr(user, field.value) or []))
        page_ids = ids[offset:offset + limit]
        found = {u.id: u for u in await self._store.get_users(page_ids)}
        items = [UserSummary.resolve(uid, found.get(uid)) for uid in page_ids]
        return UserListResponse(
            items=items,
            total=len(ids),
            offset=offset,
            limit=limit,
            has_more=offset + len(items) < len(ids),
        )

"""
Cache keys and the invalidation policy applied after every mutation.

Profile entries are keyed per viewer, and the set of viewers who may hold a
cached copy of someone's profile is unbounded. The policy therefore never tries
to enumerate them: it deletes the canonical keys (guest and self) plus any
viewer variants the caller can name explicitly (e.g. the other side of a
follow edge), and relies on the profile TTL to bound staleness for the rest.
"""
import logging
from collections.abc import Iterable
from enum import StrEnum
from uuid import UUID

from core.redis import CacheClient

logger = logging.getLogger(__name__)

# Included in every key. Bump when a cached shape (ProfileView, UserPrivate,
# PostDetail) gains, loses or renames fields: old entries are then never read
# and expire via TTL, so deployments need no explicit flush.
CACHE_SCHEMA_VERSION = 1

GUEST_VIEWER = "guest"


class EntityType(StrEnum):
    """Entity kinds with cached projections."""

    USER = "user"
    POST = "post"


def profile_cache_key(username: str, viewer_id: UUID | None) -> str:
    """Key for the profile of ``username`` as seen by ``viewer_id`` (or a guest)."""
    viewer = str(viewer_id) if viewer_id is not None else GUEST_VIEWER
    return f"profile:v{CACHE_SCHEMA_VERSION}:{username.strip().lower()}:{viewer}"


def user_cache_key(user_id: UUID) -> str:
    """Key for the private user record."""
    return f"user:v{CACHE_SCHEMA_VERSION}:{user_id}"


def post_cache_key(post_id: UUID) -> str:
    """Key for a post detail."""
    return f"post:v{CACHE_SCHEMA_VERSION}:{post_id}"


def search_cache_key(query: str, *, include_inactive: bool, offset: int, limit: int) -> str:
    """
    Key for one page of user search results.

    Not viewer-keyed and never purged by mutations: results age out via the
    search TTL.
    """
    scope = "all" if include_inactive else "active"
    return f"search:v{CACHE_SCHEMA_VERSION}:{scope}:{offset}:{limit}:{query.strip().lower()}"


class CacheInvalidationPolicy:
    """Decides which keys a mutation makes stale and purges them."""

    def __init__(self, cache: CacheClient) -> None:
        self._cache = cache

    def keys_for(
        self,
        entity_type: EntityType,
        entity_id: UUID,
        *,
        username: str | None = None,
        viewer_ids: Iterable[UUID] = (),
    ) -> list[str]:
        """
        Keys to delete synchronously for a mutation of the given entity.

        Profile keys need the username; without it only the id-keyed entry is
        purged and the profile variants age out via TTL.
        """
        if entity_type == EntityType.POST:
            return [post_cache_key(entity_id)]

        keys = [user_cache_key(entity_id)]
        if username:
            keys.append(profile_cache_key(username, None))
            keys.append(profile_cache_key(username, entity_id))
            for viewer_id in viewer_ids:
                if viewer_id != entity_id:
                    keys.append(profile_cache_key(username, viewer_id))
        # dict.fromkeys keeps order while dropping duplicates
        return list(dict.fromkeys(keys))

    async def invalidate(
        self,
        entity_type: EntityType,
        entity_id: UUID,
        *,
        username: str | None = None,
        viewer_ids: Iterable[UUID] = (),
    ) -> None:
        """
        Purge the keys a mutation made stale.

        Never raises: the mutation has already been applied, and a stale entry
        that expires via TTL is an acceptable degraded state.
        """
        keys = self.keys_for(
            entity_type, entity_id, username=username, viewer_ids=viewer_ids,
        )
        try:
            deleted = await self._cache.delete(*keys)
        except Exception:
            logger.exception(
                "cache_invalidation_failed",
                extra={"entity_type": entity_type.value, "entity_id": str(entity_id)},
            )
            return
        if not deleted:
            # Cache disabled or unreachable; the client has already logged why
            logger.debug(
                "cache_invalidation_skipped",
                extra={"entity_type": entity_type.value, "entity_id": str(entity_id)},
            )
            return
        logger.debug(
            "cache_invalidated entity_type=%s entity_id=%s keys=%d",
            entity_type.value,
            entity_id,
            len(keys),
        )

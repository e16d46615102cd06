"""Profile aggregation with cache-aside reads."""
import logging
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from core.redis import CacheClient, CacheUnavailableError
from models.user import User
from schemas.post import PostSummary
from schemas.profile import ProfileStats, ProfileView, RelationshipStatus
from services.cache_invalidation import profile_cache_key
from services.exceptions import NotFoundError
from services.graph_store import GraphStore, PostTotals
from services.post_service import readable_visibilities

logger = logging.getLogger(__name__)

PROFILE_CACHE_TTL = 300
RECENT_POSTS_LIMIT = 9


def relationship_status(subject: User, viewer_id: UUID | None) -> RelationshipStatus:
    """
    Viewer's relationship to the subject, from the subject's own edge sets.

    No extra query: subject.followers answers "does the viewer follow them"
    and subject.following answers "do they follow the viewer".
    """
    if viewer_id is None:
        return RelationshipStatus.NONE
    if viewer_id == subject.id:
        return RelationshipStatus.SELF
    is_following = viewer_id in (subject.followers or [])
    follows_you = viewer_id in (subject.following or [])
    if is_following and follows_you:
        return RelationshipStatus.MUTUAL
    if is_following:
        return RelationshipStatus.FOLLOWING
    if follows_you:
        return RelationshipStatus.FOLLOWER
    return RelationshipStatus.NONE


def engagement_rate(totals: PostTotals) -> str:
    """(likes + comments + shares) / views to two decimals; "0.00" without views."""
    if totals.views <= 0:
        return "0.00"
    return f"{(totals.likes + totals.comments + totals.shares) / totals.views:.2f}"


def build_stats(totals: PostTotals) -> ProfileStats:
    """Profile stats block from raw post totals."""
    return ProfileStats(
        posts=totals.posts,
        likes=totals.likes,
        comments=totals.comments,
        shares=totals.shares,
        views=totals.views,
        engagement_rate=engagement_rate(totals),
    )


class ProfileAggregator:
    """
    Builds ProfileView projections, reading through the cache.

    Cached entries are served as long as they exist (no freshness check beyond
    the TTL). The cache is an accelerator only: any failure to read or write it
    falls back to computing from the store.
    """

    def __init__(
        self,
        store: GraphStore,
        cache: CacheClient,
        ttl: int = PROFILE_CACHE_TTL,
        recent_posts_limit: int = RECENT_POSTS_LIMIT,
    ) -> None:
        self._store = store
        self._cache = cache
        self._ttl = ttl
        self._recent_posts_limit = recent_posts_limit

    async def get_profile(self, subject_username: str, viewer: User | None = None) -> ProfileView:
        """
        Profile of ``subject_username`` as seen by ``viewer`` (None for guests).

        Recent posts are limited to the visibilities the viewer may read; the
        stats block aggregates every published post.

        Raises:
            NotFoundError: If the user does not exist, or is inactive and the
                viewer is neither the subject nor an admin.
        """
        username = subject_username.strip().lower()
        viewer_id = viewer.id if viewer is not None else None
        key = profile_cache_key(username, viewer_id)

        cached = await self._read_cache(key)
        if cached is not None:
            return cached

        subject = await self._store.get_user_by_username(username)
        if subject is None:
            raise NotFoundError("user", subject_username)
        is_own_profile = viewer_id == subject.id
        if not subject.is_active and not (is_own_profile or (viewer and viewer.is_admin)):
            raise NotFoundError("user", subject_username)

        status = relationship_status(subject, viewer_id)
        is_following = status in (RelationshipStatus.FOLLOWING, RelationshipStatus.MUTUAL)
        follows_you = status in (RelationshipStatus.FOLLOWER, RelationshipStatus.MUTUAL)

        totals = await self._store.post_totals(subject.id)
        recent, _ = await self._store.list_published_posts(
            subject.id,
            visibilities=readable_visibilities(subject, viewer),
            offset=0,
            limit=self._recent_posts_limit,
        )

        profile = ProfileView(
            id=subject.id,
            username=subject.username,
            first_name=subject.first_name,
            last_name=subject.last_name,
            full_name=subject.full_name,
            bio=subject.bio or "",
            avatar=subject.avatar or "",
            role=subject.role,
            is_active=subject.is_active,
            created_at=subject.created_at,
            email=subject.email if is_own_profile else None,
            followers_count=subject.followers_count,
            following_count=subject.following_count,
            is_own_profile=is_own_profile,
            is_following=is_following,
            follows_you=follows_you,
            can_edit=is_own_profile,
            can_follow=viewer_id is not None and not is_own_profile and not is_following,
            relationship_status=status,
            stats=build_stats(totals),
            posts=[PostSummary.model_validate(p) for p in recent],
        )

        await self._write_cache(key, profile)
        return profile

    async def _read_cache(self, key: str) -> ProfileView | None:
        try:
            data = await self._cache.get(key)
        except (CacheUnavailableError, TimeoutError) as e:
            logger.warning("profile_cache_unavailable", extra={"key": key, "error": str(e)})
            return None
        if not data:
            logger.debug("profile_cache_miss key=%s", key)
            return None
        try:
            profile = ProfileView.model_validate_json(data)
        except PydanticValidationError:
            logger.warning("profile_cache_unreadable", extra={"key": key})
            return None
        logger.debug("profile_cache_hit key=%s", key)
        return profile

    async def _write_cache(self, key: str, profile: ProfileView) -> None:
        try:
            await self._cache.set(key, profile.model_dump_json(), self._ttl)
        except (CacheUnavailableError, TimeoutError) as e:
            logger.warning("profile_cache_unavailable", extra={"key": key, "error": str(e)})

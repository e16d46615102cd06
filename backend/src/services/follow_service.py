"""
Follow-graph mutations.

An edge a -> b is stored twice: b in a.following and a in b.followers. The two
writes go to different rows and the store offers no cross-row transaction in
general, so the service orders them (actor first) and reports a failure of the
second write as PartialGraphUpdateError instead of guessing at a rollback.
Preconditions are checked against a snapshot read just before the writes;
concurrent requests may interleave, which the idempotent set operations make
harmless for duplicate follows.
"""
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from uuid import UUID

from models.user import User
from services.cache_invalidation import CacheInvalidationPolicy, EntityType
from services.exceptions import (
    AlreadyFollowingError,
    NotFollowingError,
    NotFoundError,
    PartialGraphUpdateError,
    SelfReferenceError,
    StoreError,
)
from services.graph_store import EdgeField, GraphStore

logger = logging.getLogger(__name__)

SetMutation = Callable[[UUID, EdgeField, UUID], Awaitable[int | None]]


@dataclass
class FollowResult:
    """Edge state and counts for both parties after a mutation."""

    following: bool
    current_user_following_count: int
    target_user_followers_count: int


@dataclass
class FollowStatus:
    """Edge state between two users from the actor's side."""

    is_following: bool
    follows_you: bool


class FollowGraphService:
    """Creates and removes follow edges, then invalidates dependent caches."""

    def __init__(self, store: GraphStore, invalidation: CacheInvalidationPolicy) -> None:
        self._store = store
        self._invalidation = invalidation

    async def follow(self, actor_id: UUID, target_id: UUID) -> FollowResult:
        """
        Make ``actor_id`` follow ``target_id``.

        Raises:
            SelfReferenceError: If actor and target are the same user.
            NotFoundError: If the actor does not exist, or the target does not
                exist or is inactive.
            AlreadyFollowingError: If the edge already exists.
            PartialGraphUpdateError: If only actor.following was written.
        """
        if actor_id == target_id:
            raise SelfReferenceError("follow")

        actor, target = await self._load_pair(actor_id, target_id)
        if not target.is_active:
            raise NotFoundError("user", target_id)
        if target_id in (actor.following or []):
            raise AlreadyFollowingError

        following_count, followers_count = await self._apply(
            "follow", actor, target, self._store.add_to_set,
        )
        logger.info(
            "user_followed",
            extra={"actor_id": str(actor_id), "target_id": str(target_id)},
        )
        return FollowResult(
            following=True,
            current_user_following_count=following_count,
            target_user_followers_count=followers_count,
        )

    async def unfollow(self, actor_id: UUID, target_id: UUID) -> FollowResult:
        """
        Remove the edge ``actor_id`` -> ``target_id``.

        Inactive targets can still be unfollowed so users can clean up edges
        pointing at deactivated accounts.

        Raises:
            SelfReferenceError: If actor and target are the same user.
            NotFoundError: If either user does not exist.
            NotFollowingError: If the edge does not exist.
            PartialGraphUpdateError: If only actor.following was written.
        """
        if actor_id == target_id:
            raise SelfReferenceError("unfollow")

        actor, target = await self._load_pair(actor_id, target_id)
        if target_id not in (actor.following or []):
            raise NotFollowingError

        following_count, followers_count = await self._apply(
            "unfollow", actor, target, self._store.remove_from_set,
        )
        logger.info(
            "user_unfollowed",
            extra={"actor_id": str(actor_id), "target_id": str(target_id)},
        )
        return FollowResult(
            following=False,
            current_user_following_count=following_count,
            target_user_followers_count=followers_count,
        )

    async def get_status(self, actor_id: UUID, target_id: UUID) -> FollowStatus:
        """Edge state between two users, read from the actor's record alone."""
        if actor_id == target_id:
            return FollowStatus(is_following=False, follows_you=False)
        actor = await self._store.get_user(actor_id)
        if actor is None:
            raise NotFoundError("user", actor_id)
        if await self._store.get_user(target_id) is None:
            raise NotFoundError("user", target_id)
        return FollowStatus(
            is_following=target_id in (actor.following or []),
            follows_you=target_id in (actor.followers or []),
        )

    async def _load_pair(self, actor_id: UUID, target_id: UUID) -> tuple[User, User]:
        # Sequential: a single AsyncSession cannot run queries concurrently
        actor = await self._store.get_user(actor_id)
        if actor is None:
            raise NotFoundError("user", actor_id)
        target = await self._store.get_user(target_id)
        if target is None:
            raise NotFoundError("user", target_id)
        return actor, target

    async def _apply(
        self,
        operation: str,
        actor: User,
        target: User,
        mutate: SetMutation,
    ) -> tuple[int, int]:
        """Write actor.following then target.followers; returns both new sizes."""
        # First write: a failure here leaves the graph untouched, so it propagates as-is
        following_count = await mutate(actor.id, EdgeField.FOLLOWING, target.id)
        if following_count is None:
            raise NotFoundError("user", actor.id)

        cause: StoreError | None = None
        try:
            followers_count = await mutate(target.id, EdgeField.FOLLOWERS, actor.id)
        except StoreError as e:
            followers_count = None
            cause = e

        if followers_count is None:
            logger.error(
                "partial_graph_update",
                extra={
                    "operation": operation,
                    "actor_id": str(actor.id),
                    "target_id": str(target.id),
                },
            )
            # actor.following did change, so its cached projections are stale either way
            await self._invalidate_pair(actor, target)
            raise PartialGraphUpdateError(actor.id, target.id, operation) from cause

        await self._invalidate_pair(actor, target)
        return following_count, followers_count

    async def _invalidate_pair(self, actor: User, target: User) -> None:
        # Each side's profile as seen by the other is the one viewer variant we can name
        await self._invalidation.invalidate(
            EntityType.USER, actor.id, username=actor.username, viewer_ids=[target.id],
        )
        await self._invalidation.invalidate(
            EntityType.USER, target.id, username=target.username, viewer_ids=[actor.id],
        )

"""Tests for profile aggregation and its cache-aside reads."""
import pytest

from models.post import PostStatus, PostVisibility
from models.user import UserRole
from schemas.profile import RelationshipStatus
from services.cache_invalidation import CacheInvalidationPolicy, profile_cache_key
from services.exceptions import NotFoundError
from services.follow_service import FollowGraphService
from services.graph_store import PostTotals
from services.profile_service import (
    ProfileAggregator,
    engagement_rate,
    relationship_status,
)
from tests.fakes import FakeCache, FakeGraphStore


@pytest.fixture
def aggregator(store: FakeGraphStore, cache: FakeCache) -> ProfileAggregator:
    """Profile aggregator over the fake store and cache."""
    return ProfileAggregator(store, cache, ttl=300)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestEngagementRate:
    """Tests for engagement_rate."""

    def test__engagement_rate__zero_views_is_zero(self) -> None:
        assert engagement_rate(PostTotals(likes=10, comments=3, shares=1, views=0)) == "0.00"

    def test__engagement_rate__ratio_to_two_decimals(self) -> None:
        assert engagement_rate(PostTotals(likes=10, comments=5, shares=5, views=40)) == "0.50"

    def test__engagement_rate__rounds(self) -> None:
        assert engagement_rate(PostTotals(likes=1, views=3)) == "0.33"

    def test__engagement_rate__can_exceed_one(self) -> None:
        assert engagement_rate(PostTotals(likes=30, views=10)) == "3.00"


class TestRelationshipStatus:
    """Tests for relationship_status."""

    def test__guest_is_none(self, store: FakeGraphStore) -> None:
        alice = store.add_user("alice")
        assert relationship_status(alice, None) == RelationshipStatus.NONE

    def test__self(self, store: FakeGraphStore) -> None:
        alice = store.add_user("alice")
        assert relationship_status(alice, alice.id) == RelationshipStatus.SELF

    def test__following(self, store: FakeGraphStore) -> None:
        alice = store.add_user("alice")
        bob = store.add_user("bob")
        store.connect(bob, alice)
        assert relationship_status(alice, bob.id) == RelationshipStatus.FOLLOWING

    def test__follower(self, store: FakeGraphStore) -> None:
        alice = store.add_user("alice")
        bob = store.add_user("bob")
        store.connect(alice, bob)
        assert relationship_status(alice, bob.id) == RelationshipStatus.FOLLOWER

    def test__mutual(self, store: FakeGraphStore) -> None:
        alice = store.add_user("alice")
        bob = store.add_user("bob")
        store.connect(alice, bob)
        store.connect(bob, alice)
        assert relationship_status(alice, bob.id) == RelationshipStatus.MUTUAL

    def test__none(self, store: FakeGraphStore) -> None:
        alice = store.add_user("alice")
        bob = store.add_user("bob")
        assert relationship_status(alice, bob.id) == RelationshipStatus.NONE


# ---------------------------------------------------------------------------
# get_profile
# ---------------------------------------------------------------------------


class TestGetProfile:
    """Tests for ProfileAggregator.get_profile."""

    async def test__guest_view(
        self, store: FakeGraphStore, aggregator: ProfileAggregator,
    ) -> None:
        alice = store.add_user("alice", first_name="Alice", last_name="Liddell", bio="hi")

        profile = await aggregator.get_profile("alice")

        assert profile.id == alice.id
        assert profile.username == "alice"
        assert profile.full_name == "Alice Liddell"
        assert profile.bio == "hi"
        assert profile.email is None
        assert profile.is_own_profile is False
        assert profile.can_edit is False
        assert profile.can_follow is False
        assert profile.relationship_status == RelationshipStatus.NONE

    async def test__own_profile_includes_email(
        self, store: FakeGraphStore, aggregator: ProfileAggregator,
    ) -> None:
        alice = store.add_user("alice")

        profile = await aggregator.get_profile("alice", alice)

        assert profile.email == "alice@example.com"
        assert profile.is_own_profile is True
        assert profile.can_edit is True
        assert profile.can_follow is False
        assert profile.relationship_status == RelationshipStatus.SELF

    async def test__other_viewer_never_sees_email(
        self, store: FakeGraphStore, aggregator: ProfileAggregator,
    ) -> None:
        store.add_user("alice")
        admin = store.add_user("root", role=UserRole.ADMIN)

        profile = await aggregator.get_profile("alice", admin)

        assert profile.email is None

    async def test__viewer_following_subject(
        self, store: FakeGraphStore, aggregator: ProfileAggregator,
    ) -> None:
        alice = store.add_user("alice")
        bob = store.add_user("bob")
        store.connect(bob, alice)

        profile = await aggregator.get_profile("alice", bob)

        assert profile.is_following is True
        assert profile.follows_you is False
        assert profile.can_follow is False
        assert profile.relationship_status == RelationshipStatus.FOLLOWING
        assert profile.followers_count == 1

    async def test__subject_following_viewer(
        self, store: FakeGraphStore, aggregator: ProfileAggregator,
    ) -> None:
        alice = store.add_user("alice")
        bob = store.add_user("bob")
        store.connect(alice, bob)

        profile = await aggregator.get_profile("alice", bob)

        assert profile.is_following is False
        assert profile.follows_you is True
        assert profile.can_follow is True
        assert profile.relationship_status == RelationshipStatus.FOLLOWER

    async def test__mutual(
        self, store: FakeGraphStore, aggregator: ProfileAggregator,
    ) -> None:
        alice = store.add_user("alice")
        bob = store.add_user("bob")
        store.connect(alice, bob)
        store.connect(bob, alice)

        profile = await aggregator.get_profile("alice", bob)

        assert profile.is_following is True
        assert profile.follows_you is True
        assert profile.relationship_status == RelationshipStatus.MUTUAL

    async def test__username_lookup_is_case_insensitive(
        self, store: FakeGraphStore, aggregator: ProfileAggregator,
    ) -> None:
        alice = store.add_user("alice")

        profile = await aggregator.get_profile("  ALICE ")

        assert profile.id == alice.id

    async def test__unknown_user_raises_not_found(
        self, aggregator: ProfileAggregator,
    ) -> None:
        with pytest.raises(NotFoundError):
            await aggregator.get_profile("nobody")

    async def test__inactive_user_hidden_from_others(
        self, store: FakeGraphStore, aggregator: ProfileAggregator,
    ) -> None:
        store.add_user("alice", is_active=False)
        bob = store.add_user("bob")

        with pytest.raises(NotFoundError):
            await aggregator.get_profile("alice")
        with pytest.raises(NotFoundError):
            await aggregator.get_profile("alice", bob)

    async def test__inactive_user_visible_to_self_and_admin(
        self, store: FakeGraphStore, aggregator: ProfileAggregator,
    ) -> None:
        alice = store.add_user("alice", is_active=False)
        admin = store.add_user("root", role=UserRole.ADMIN)

        own = await aggregator.get_profile("alice", alice)
        as_admin = await aggregator.get_profile("alice", admin)

        assert own.is_active is False
        assert as_admin.is_active is False


class TestProfileStats:
    """Tests for the stats and recent posts blocks."""

    async def test__stats_count_only_published_live_posts(
        self, store: FakeGraphStore, aggregator: ProfileAggregator,
    ) -> None:
        alice = store.add_user("alice")
        store.add_post(alice, likes=10, comments=5, shares=5, views=40)
        store.add_post(alice, likes=1, views=10)
        store.add_post(alice, status=PostStatus.DRAFT, likes=100, views=100)
        store.add_post(alice, status=PostStatus.ARCHIVED, likes=100, views=100)
        store.add_post(alice, deleted=True, likes=100, views=100)

        profile = await aggregator.get_profile("alice")

        stats = profile.stats
        assert stats.posts == 2
        assert stats.likes == 11
        assert stats.comments == 5
        assert stats.shares == 5
        assert stats.views == 50
        assert stats.engagement_rate == "0.42"

    async def test__no_posts_gives_zero_stats(
        self, store: FakeGraphStore, aggregator: ProfileAggregator,
    ) -> None:
        store.add_user("alice")

        profile = await aggregator.get_profile("alice")

        assert profile.stats.posts == 0
        assert profile.stats.engagement_rate == "0.00"
        assert profile.posts == []

    async def test__recent_posts_newest_first_and_limited(
        self, store: FakeGraphStore, aggregator: ProfileAggregator,
    ) -> None:
        alice = store.add_user("alice")
        posts = [store.add_post(alice, content=f"post {i}") for i in range(12)]
        store.add_post(alice, status=PostStatus.DRAFT, content="draft")

        profile = await aggregator.get_profile("alice")

        assert len(profile.posts) == 9
        assert [p.id for p in profile.posts] == [p.id for p in reversed(posts)][:9]
        assert profile.stats.posts == 12

    async def test__recent_posts_respect_visibility(
        self, store: FakeGraphStore, aggregator: ProfileAggregator,
    ) -> None:
        bob = store.add_user("bob")
        fan = store.add_user("fan")
        store.connect(fan, bob)
        public = store.add_post(bob, content="hello world")
        followers_only = store.add_post(
            bob, content="followers only", visibility=PostVisibility.FOLLOWERS,
        )
        private = store.add_post(
            bob, content="my private diary", visibility=PostVisibility.PRIVATE,
        )

        guest = await aggregator.get_profile("bob")
        follower = await aggregator.get_profile("bob", fan)
        own = await aggregator.get_profile("bob", bob)

        assert [p.id for p in guest.posts] == [public.id]
        assert [p.id for p in follower.posts] == [followers_only.id, public.id]
        assert [p.id for p in own.posts] == [private.id, followers_only.id, public.id]
        # Aggregates cover every published post whoever is looking
        assert guest.stats.posts == 3


class TestProfileCache:
    """Tests for cache-aside behavior."""

    async def test__result_is_cached_per_viewer(
        self,
        store: FakeGraphStore,
        cache: FakeCache,
        aggregator: ProfileAggregator,
    ) -> None:
        store.add_user("alice")
        bob = store.add_user("bob")

        await aggregator.get_profile("alice")
        await aggregator.get_profile("alice", bob)

        assert profile_cache_key("alice", None) in cache.data
        assert profile_cache_key("alice", bob.id) in cache.data
        assert cache.ttls[profile_cache_key("alice", None)] == 300

    async def test__cache_hit_skips_store(
        self,
        store: FakeGraphStore,
        aggregator: ProfileAggregator,
    ) -> None:
        alice = store.add_user("alice", bio="before")
        await aggregator.get_profile("alice")
        reads = store.reads
        alice.bio = "after"

        profile = await aggregator.get_profile("alice")

        assert profile.bio == "before"
        assert store.reads == reads

    async def test__cache_unavailable_falls_back_to_store(
        self,
        store: FakeGraphStore,
        cache: FakeCache,
        aggregator: ProfileAggregator,
    ) -> None:
        store.add_user("alice", bio="fresh")
        cache.unavailable = True

        profile = await aggregator.get_profile("alice")

        assert profile.bio == "fresh"

    async def test__unreadable_entry_is_recomputed(
        self,
        store: FakeGraphStore,
        cache: FakeCache,
        aggregator: ProfileAggregator,
    ) -> None:
        store.add_user("alice", bio="fresh")
        cache.data[profile_cache_key("alice", None)] = "not json"

        profile = await aggregator.get_profile("alice")

        assert profile.bio == "fresh"

    async def test__follow_invalidates_pairwise_views(
        self,
        store: FakeGraphStore,
        cache: FakeCache,
        aggregator: ProfileAggregator,
    ) -> None:
        """After a follow, neither party reads a stale relationship from cache."""
        alice = store.add_user("alice")
        bob = store.add_user("bob")
        follows = FollowGraphService(store, CacheInvalidationPolicy(cache))

        before_bob_view = await aggregator.get_profile("alice", bob)
        before_alice_view = await aggregator.get_profile("bob", alice)
        before_guest_view = await aggregator.get_profile("alice")
        assert before_bob_view.is_following is False
        assert before_alice_view.follows_you is False
        assert before_guest_view.followers_count == 0

        await follows.follow(bob.id, alice.id)

        bob_view = await aggregator.get_profile("alice", bob)
        alice_view = await aggregator.get_profile("bob", alice)
        guest_view = await aggregator.get_profile("alice")
        assert bob_view.is_following is True
        assert bob_view.relationship_status == RelationshipStatus.FOLLOWING
        assert alice_view.follows_you is True
        assert guest_view.followers_count == 1

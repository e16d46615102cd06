"""FastAPI dependencies for injection."""
from fastapi import Depends

from core.auth import get_current_user, get_optional_user
from core.config import Settings, get_settings
from core.redis import CacheClient, get_cache_client
from db.session import get_async_session, get_graph_store
from services.cache_invalidation import CacheInvalidationPolicy
from services.follow_service import FollowGraphService
from services.graph_store import GraphStore
from services.post_service import PostService
from services.profile_service import ProfileAggregator
from services.user_service import UserService


def get_invalidation_policy(
    cache: CacheClient = Depends(get_cache_client),
) -> CacheInvalidationPolicy:
    """Invalidation policy over the shared cache client."""
    return CacheInvalidationPolicy(cache)


def get_follow_service(
    store: GraphStore = Depends(get_graph_store),
    invalidation: CacheInvalidationPolicy = Depends(get_invalidation_policy),
) -> FollowGraphService:
    """Follow-graph service for the current request."""
    return FollowGraphService(store, invalidation)


def get_profile_aggregator(
    store: GraphStore = Depends(get_graph_store),
    cache: CacheClient = Depends(get_cache_client),
    settings: Settings = Depends(get_settings),
) -> ProfileAggregator:
    """Profile aggregator for the current request."""
    return ProfileAggregator(store, cache, ttl=settings.profile_cache_ttl)


def get_user_service(
    store: GraphStore = Depends(get_graph_store),
    cache: CacheClient = Depends(get_cache_client),
    invalidation: CacheInvalidationPolicy = Depends(get_invalidation_policy),
    settings: Settings = Depends(get_settings),
) -> UserService:
    """User service for the current request."""
    return UserService(
        store,
        cache,
        invalidation,
        ttl=settings.user_cache_ttl,
        search_ttl=settings.search_cache_ttl,
    )


def get_post_service(
    store: GraphStore = Depends(get_graph_store),
    cache: CacheClient = Depends(get_cache_client),
    invalidation: CacheInvalidationPolicy = Depends(get_invalidation_policy),
    settings: Settings = Depends(get_settings),
) -> PostService:
    """Post service for the current request."""
    return PostService(store, cache, invalidation, ttl=settings.post_cache_ttl)


__all__ = [
    "get_async_session",
    "get_cache_client",
    "get_current_user",
    "get_follow_service",
    "get_graph_store",
    "get_invalidation_policy",
    "get_optional_user",
    "get_post_service",
    "get_profile_aggregator",
    "get_settings",
    "get_user_service",
]

"""User, follow-graph and profile endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from api.dependencies import (
    get_current_user,
    get_follow_service,
    get_optional_user,
    get_post_service,
    get_profile_aggregator,
    get_user_service,
)
from models.user import User
from schemas.envelope import ApiResponse
from schemas.post import PostListResponse
from schemas.profile import ProfileView
from schemas.user import (
    FollowResponse,
    FollowStatusResponse,
    UserListResponse,
    UserPrivate,
    UserUpdate,
)
from services.follow_service import FollowGraphService
from services.graph_store import EdgeField
from services.post_service import PostService
from services.profile_service import ProfileAggregator
from services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=ApiResponse[UserListResponse])
async def search_users(
    search: str | None = Query(default=None, max_length=100),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    include_inactive: bool = Query(default=False),
    current_user: User | None = Depends(get_optional_user),
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserListResponse]:
    """
    Search users by username or name, or list them when no term is given.

    ``include_inactive`` requires an admin.
    """
    page = await service.search_users(
        search,
        offset=offset,
        limit=limit,
        requester=current_user,
        include_inactive=include_inactive,
    )
    return ApiResponse.ok(page)


@router.post("/{user_id}/follow", response_model=ApiResponse[FollowResponse])
async def follow_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: FollowGraphService = Depends(get_follow_service),
) -> ApiResponse[FollowResponse]:
    """Follow another user."""
    result = await service.follow(current_user.id, user_id)
    return ApiResponse.ok(
        FollowResponse.model_validate(result), message="User followed successfully",
    )


@router.post("/{user_id}/unfollow", response_model=ApiResponse[FollowResponse])
async def unfollow_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: FollowGraphService = Depends(get_follow_service),
) -> ApiResponse[FollowResponse]:
    """Stop following a user."""
    result = await service.unfollow(current_user.id, user_id)
    return ApiResponse.ok(
        FollowResponse.model_validate(result), message="User unfollowed successfully",
    )


@router.get("/{user_id}/follow-status", response_model=ApiResponse[FollowStatusResponse])
async def get_follow_status(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: FollowGraphService = Depends(get_follow_service),
) -> ApiResponse[FollowStatusResponse]:
    """Whether the caller follows this user and whether they follow back."""
    status = await service.get_status(current_user.id, user_id)
    return ApiResponse.ok(FollowStatusResponse.model_validate(status))


@router.get("/{user_id}/followers", response_model=ApiResponse[UserListResponse])
async def list_followers(
    user_id: UUID,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    current_user: User | None = Depends(get_optional_user),
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserListResponse]:
    """Followers of a user, most recent first."""
    page = await service.list_edges(
        user_id, EdgeField.FOLLOWERS, offset=offset, limit=limit, requester=current_user,
    )
    return ApiResponse.ok(page)


@router.get("/{user_id}/following", response_model=ApiResponse[UserListResponse])
async def list_following(
    user_id: UUID,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    current_user: User | None = Depends(get_optional_user),
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserListResponse]:
    """Users this user follows, most recent first."""
    page = await service.list_edges(
        user_id, EdgeField.FOLLOWING, offset=offset, limit=limit, requester=current_user,
    )
    return ApiResponse.ok(page)


@router.get("/{username}/profile", response_model=ApiResponse[ProfileView])
async def get_profile(
    username: str,
    current_user: User | None = Depends(get_optional_user),
    aggregator: ProfileAggregator = Depends(get_profile_aggregator),
) -> ApiResponse[ProfileView]:
    """
    Public profile with stats and recent posts.

    Authentication is optional; when present the response includes the
    relationship between caller and subject.
    """
    profile = await aggregator.get_profile(username, current_user)
    return ApiResponse.ok(profile)


@router.get("/{username}/posts", response_model=ApiResponse[PostListResponse])
async def list_user_posts(
    username: str,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    current_user: User | None = Depends(get_optional_user),
    service: PostService = Depends(get_post_service),
) -> ApiResponse[PostListResponse]:
    """Published posts by a user that the caller may read, newest first."""
    page = await service.list_user_posts(
        username, offset=offset, limit=limit, requester=current_user,
    )
    return ApiResponse.ok(page)


@router.get("/{user_id}", response_model=ApiResponse[UserPrivate])
async def get_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserPrivate]:
    """Full user record (self or admin)."""
    return ApiResponse.ok(await service.get_user(user_id, current_user))


@router.put("/{user_id}", response_model=ApiResponse[UserPrivate])
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserPrivate]:
    """Update profile fields (self or admin)."""
    user = await service.update_user(user_id, current_user, data)
    return ApiResponse.ok(user, message="Profile updated successfully")


@router.post("/{user_id}/deactivate", response_model=ApiResponse[UserPrivate])
async def deactivate_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserPrivate]:
    """Deactivate an account (admin only)."""
    user = await service.set_active(user_id, current_user, active=False)
    return ApiResponse.ok(user, message="User deactivated")


@router.post("/{user_id}/reactivate", response_model=ApiResponse[UserPrivate])
async def reactivate_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserPrivate]:
    """Reactivate an account (admin only)."""
    user = await service.set_active(user_id, current_user, active=True)
    return ApiResponse.ok(user, message="User reactivated")

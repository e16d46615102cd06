"""Post CRUD and engagement endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends

from api.dependencies import get_current_user, get_optional_user, get_post_service
from models.user import User
from schemas.envelope import ApiResponse
from schemas.post import EngagementResponse, PostCreate, PostDetail, PostUpdate
from services.graph_store import EngagementCounter
from services.post_service import PostService

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("", response_model=ApiResponse[PostDetail], status_code=201)
async def create_post(
    data: PostCreate,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
) -> ApiResponse[PostDetail]:
    """Create a post owned by the caller."""
    post = await service.create_post(current_user, data)
    return ApiResponse.ok(post, message="Post created successfully", status_code=201)


@router.get("/{post_id}", response_model=ApiResponse[PostDetail])
async def get_post(
    post_id: UUID,
    current_user: User | None = Depends(get_optional_user),
    service: PostService = Depends(get_post_service),
) -> ApiResponse[PostDetail]:
    """Get a single post."""
    return ApiResponse.ok(await service.get_post(post_id, current_user))


@router.patch("/{post_id}", response_model=ApiResponse[PostDetail])
async def update_post(
    post_id: UUID,
    data: PostUpdate,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
) -> ApiResponse[PostDetail]:
    """Update a post (author only)."""
    post = await service.update_post(post_id, current_user, data)
    return ApiResponse.ok(post, message="Post updated successfully")


@router.delete("/{post_id}", response_model=ApiResponse[None])
async def delete_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
) -> ApiResponse[None]:
    """Soft-delete a post (author or admin)."""
    await service.delete_post(post_id, current_user)
    return ApiResponse.ok(message="Post deleted successfully")


@router.post("/{post_id}/like", response_model=ApiResponse[EngagementResponse])
async def like_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
) -> ApiResponse[EngagementResponse]:
    """Like a post."""
    result = await service.record_engagement(post_id, EngagementCounter.LIKES, current_user)
    return ApiResponse.ok(result, message="Post liked")


@router.post("/{post_id}/view", response_model=ApiResponse[EngagementResponse])
async def view_post(
    post_id: UUID,
    current_user: User | None = Depends(get_optional_user),
    service: PostService = Depends(get_post_service),
) -> ApiResponse[EngagementResponse]:
    """Record a view. Anonymous views count."""
    result = await service.record_engagement(post_id, EngagementCounter.VIEWS, current_user)
    return ApiResponse.ok(result)


@router.post("/{post_id}/share", response_model=ApiResponse[EngagementResponse])
async def share_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
) -> ApiResponse[EngagementResponse]:
    """Record a share."""
    result = await service.record_engagement(post_id, EngagementCounter.SHARES, current_user)
    return ApiResponse.ok(result, message="Post shared")

"""Author-or-admin gated blog and comment endpoints."""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends

from inkwell.api.dependencies import (
    blog_id_param,
    comment_id_param,
    get_blog_service,
    get_comment_service,
    require_blog_owner,
    require_comment_owner,
)
from inkwell.models.auth import ApiResponse
from inkwell.models.content import BlogPayload, UpdateBlogRequest
from inkwell.models.user import AuthenticatedUser
from inkwell.services.content_service import BlogService, CommentService
from inkwell.services.errors import ResourceNotFoundError

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Content"])


@router.put("/blogs/{blog_id}")
async def update_blog(
    request: UpdateBlogRequest,
    current_user: AuthenticatedUser = Depends(require_blog_owner),
    blog_id: UUID = Depends(blog_id_param),
    blog_service: BlogService = Depends(get_blog_service),
) -> ApiResponse[BlogPayload]:
    """Edit a blog post (author or admin)."""
    blog = await blog_service.update_blog(
        blog_id,
        title=request.title,
        content=request.content,
    )
    if blog is None:
        raise ResourceNotFoundError("Blog not found")

    logger.info("blog_edited", blog_id=str(blog_id), editor_id=str(current_user.id))
    return ApiResponse(
        success=True,
        message="Blog updated successfully",
        data=BlogPayload(blog=blog),
    )


@router.delete("/blogs/{blog_id}")
async def delete_blog(
    current_user: AuthenticatedUser = Depends(require_blog_owner),
    blog_id: UUID = Depends(blog_id_param),
    blog_service: BlogService = Depends(get_blog_service),
) -> ApiResponse[None]:
    """Delete a blog post (author or admin)."""
    if not await blog_service.delete_blog(blog_id):
        raise ResourceNotFoundError("Blog not found")
    return ApiResponse(success=True, message="Blog deleted successfully")


@router.delete("/comments/{comment_id}")
async def delete_comment(
    current_user: AuthenticatedUser = Depends(require_comment_owner),
    comment_id: UUID = Depends(comment_id_param),
    comment_service: CommentService = Depends(get_comment_service),
) -> ApiResponse[None]:
    """Delete a comment (author or admin)."""
    if not await comment_service.delete_comment(comment_id):
        raise ResourceNotFoundError("Comment not found")
    return ApiResponse(success=True, message="Comment deleted successfully")

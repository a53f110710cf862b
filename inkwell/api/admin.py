"""Admin API endpoints for user management."""

import math
from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query

from inkwell.api.dependencies import get_user_service, require_admin
from inkwell.models.auth import (
    ApiResponse,
    Pagination,
    UpdateUserRequest,
    UserListPayload,
    UserPayload,
    UserSummary,
)
from inkwell.models.user import AuthenticatedUser, Role
from inkwell.services.errors import ResourceNotFoundError, SelfModificationError
from inkwell.services.user_service import UserService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[Role] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = Query(None, max_length=255),
    admin: AuthenticatedUser = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
) -> ApiResponse[UserListPayload]:
    """List users with pagination and optional filters (admin only)."""
    users, total = await user_service.list_users(
        page=page,
        limit=limit,
        role=role,
        is_active=is_active,
        search=search,
    )
    return ApiResponse(
        success=True,
        data=UserListPayload(
            users=[UserSummary.from_user(u) for u in users],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                pages=math.ceil(total / limit),
            ),
        ),
    )


@router.get("/users/{user_id}")
async def get_user(
    user_id: UUID,
    admin: AuthenticatedUser = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
) -> ApiResponse[UserPayload]:
    """Get a single user (admin only)."""
    user = await user_service.get_by_id(user_id)
    if user is None:
        raise ResourceNotFoundError("User not found")
    return ApiResponse(success=True, data=UserPayload(user=UserSummary.from_user(user)))


@router.put("/users/{user_id}/role")
async def update_user(
    user_id: UUID,
    request: UpdateUserRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
) -> ApiResponse[UserPayload]:
    """Change a user's role or active flag (admin only).

    Deactivation ends the user's session immediately. Admins cannot
    deactivate their own account.

    Raises:
        SelfModificationError 400: If the admin deactivates themselves
        ResourceNotFoundError 404: If user not found
    """
    if admin.id == user_id and request.is_active is False:
        raise SelfModificationError("Cannot deactivate your own account")

    updated = await user_service.update_user(
        user_id=user_id,
        role=request.role,
        is_active=request.is_active,
    )
    if updated is None:
        raise ResourceNotFoundError("User not found")

    logger.info(
        "admin_updated_user",
        admin_id=str(admin.id),
        target_user_id=str(user_id),
        role=request.role.value if request.role else None,
        is_active=request.is_active,
    )
    return ApiResponse(
        success=True,
        message="User updated successfully",
        data=UserPayload(user=UserSummary.from_user(updated)),
    )


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: UUID,
    admin: AuthenticatedUser = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
) -> ApiResponse[None]:
    """Delete a user (admin only).

    An admin can delete any account except their own.

    Raises:
        SelfModificationError 400: If admin tries to delete themselves
        ResourceNotFoundError 404: If user not found
    """
    if admin.id == user_id:
        raise SelfModificationError("Cannot delete your own account")

    deleted = await user_service.delete_user(user_id)
    if not deleted:
        raise ResourceNotFoundError("User not found")

    logger.info(
        "admin_deleted_user",
        admin_id=str(admin.id),
        deleted_user_id=str(user_id),
    )
    return ApiResponse(success=True, message="User deleted successfully")

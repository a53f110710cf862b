"""Auth request and response models with validation."""

from datetime import datetime
from typing import Generic, Literal, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from inkwell.models.user import AuthenticatedUser, Role, User

T = TypeVar("T")

TokenType = Literal["access", "refresh"]


class ApiResponse(BaseModel, Generic[T]):
    """Uniform response envelope used by every endpoint."""

    success: bool
    message: Optional[str] = None
    data: Optional[T] = None


class GoogleLoginRequest(BaseModel):
    """Google ID token posted by the sign-in button.

    Attributes:
        credential: The raw ID token issued by Google
    """

    credential: str = Field(..., min_length=1)

    @field_validator("credential")
    @classmethod
    def credential_not_blank(cls, v: str) -> str:
        """Ensure the credential is not whitespace only."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Credential cannot be empty or whitespace only")
        return stripped


class TokenPair(BaseModel):
    """Access and refresh tokens minted together."""

    access_token: str
    refresh_token: str


class TokenClaims(BaseModel):
    """Verified claims of an access or refresh token."""

    sub: UUID
    type: TokenType
    iat: int
    exp: int
    jti: str


class UserSummary(BaseModel):
    """Public user representation for API responses."""

    id: UUID
    email: str
    name: str
    avatar_url: Optional[str] = None
    role: Role
    is_active: bool
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            avatar_url=user.avatar_url,
            role=user.role,
            is_active=user.is_active,
            created_at=user.created_at,
        )


class UserPayload(BaseModel):
    """``data`` body for endpoints that return a single user."""

    user: UserSummary


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class UserListPayload(BaseModel):
    users: list[UserSummary]
    pagination: Pagination


class UpdateUserRequest(BaseModel):
    """Admin request to change a user's role or active flag.

    All fields are optional; only provided fields are updated.
    """

    role: Optional[Role] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")

    model_config = {"populate_by_name": True}


class IdentityPayload(BaseModel):
    """``data`` body of ``/auth/me``: the request identity projection."""

    user: AuthenticatedUser

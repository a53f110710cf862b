"""User and identity models."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class Role(str, Enum):
    """Privilege level of a user account."""

    USER = "USER"
    ADMIN = "ADMIN"


class User(BaseModel):
    """A registered user of the blog platform.

    The refresh-token fingerprint is deliberately not part of this model;
    it is only ever read through ``UserService.get_refresh_state``.
    """

    id: UUID
    email: str
    name: str
    avatar_url: Optional[str] = None
    google_id: Optional[str] = None
    role: Role = Role.USER
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class FederatedIdentity(BaseModel):
    """Verified claims returned by an identity provider."""

    external_subject_id: str
    email: str
    name: str
    avatar_url: Optional[str] = None


class AuthenticatedUser(BaseModel):
    """Identity attached to an authenticated request."""

    id: UUID
    email: str
    name: str
    avatar_url: Optional[str] = None
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "AuthenticatedUser":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            avatar_url=user.avatar_url,
            role=user.role,
        )

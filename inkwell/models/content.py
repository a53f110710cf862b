"""Blog and comment models used by the ownership-gated endpoints."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class Blog(BaseModel):
    id: UUID
    author_id: UUID
    title: str
    content: str
    updated_at: datetime


class UpdateBlogRequest(BaseModel):
    """Fields an author (or admin) may change on a blog post."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1)


class BlogPayload(BaseModel):
    blog: Blog

"""Blog and comment persistence used by the ownership guards.

Only the slice the authorization layer needs lives here: owner lookups and
the author-or-admin mutations they gate.
"""

from datetime import datetime, timezone
from typing import Optional, Protocol
from uuid import UUID

import structlog

from inkwell.database import get_pool
from inkwell.models.content import Blog

logger = structlog.get_logger(__name__)


class OwnerLookup(Protocol):
    """Resolves the owning user of a resource.

    Returns None when the resource does not exist, distinct from any owner id.
    """

    async def get_owner_id(self, resource_id: UUID) -> Optional[UUID]:
        ...


class BlogService:
    """Blog owner lookups and author-gated mutations."""

    async def get_owner_id(self, resource_id: UUID) -> Optional[UUID]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT author_id FROM blogs WHERE id = $1",
                resource_id,
            )

    async def update_blog(
        self,
        blog_id: UUID,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Optional[Blog]:
        """Update title and/or content of a blog.

        Returns:
            Updated Blog, or None if it no longer exists
        """
        pool = await get_pool()
        now = datetime.now(timezone.utc)

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                UPDATE blogs
                SET title = COALESCE($1, title),
                    content = COALESCE($2, content),
                    updated_at = $3
                WHERE id = $4
                RETURNING id, author_id, title, content, updated_at
                """,
                title,
                content,
                now,
                blog_id,
            )

        if row is None:
            return None

        logger.info("blog_updated", blog_id=str(blog_id))
        return Blog(
            id=row["id"],
            author_id=row["author_id"],
            title=row["title"],
            content=row["content"],
            updated_at=row["updated_at"],
        )

    async def delete_blog(self, blog_id: UUID) -> bool:
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute("DELETE FROM blogs WHERE id = $1", blog_id)

        deleted = result == "DELETE 1"
        if deleted:
            logger.info("blog_deleted", blog_id=str(blog_id))
        return deleted


class CommentService:
    """Comment owner lookups and author-gated deletion."""

    async def get_owner_id(self, resource_id: UUID) -> Optional[UUID]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT author_id FROM comments WHERE id = $1",
                resource_id,
            )

    async def delete_comment(self, comment_id: UUID) -> bool:
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute("DELETE FROM comments WHERE id = $1", comment_id)

        deleted = result == "DELETE 1"
        if deleted:
            logger.info("comment_deleted", comment_id=str(comment_id))
        return deleted

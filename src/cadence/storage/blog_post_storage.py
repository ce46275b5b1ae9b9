"""
Blog Post Storage

Narrow read/publish access to blog posts for the blog_post handler.
"""
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from .base import BaseStorage
from ..models.blog_post import BlogPost, PostStatus

logger = logging.getLogger("cadence.storage.blog_posts")


class BlogPostStorage(BaseStorage):
    """Storage for BlogPost entities"""

    async def get_by_id(self, post_id: UUID) -> Optional[BlogPost]:
        row = await self.fetchrow("SELECT * FROM blog_posts WHERE id = $1", post_id)
        return self._row_to_post(row) if row else None

    async def publish(self, post_id: UUID, published_at: datetime) -> Optional[BlogPost]:
        """Flip a scheduled post to published. None if it was not scheduled."""
        row = await self.fetchrow(
            """
            UPDATE blog_posts
            SET status = 'published', published_at = $2, updated_at = $2
            WHERE id = $1 AND status = 'scheduled'
            RETURNING *
            """,
            post_id, published_at,
        )
        return self._row_to_post(row) if row else None

    @staticmethod
    def _row_to_post(row) -> BlogPost:
        return BlogPost(
            id=row["id"],
            title=row["title"],
            slug=row["slug"],
            status=PostStatus(row["status"]),
            scheduled_for=row["scheduled_for"],
            published_at=row["published_at"],
            updated_at=row["updated_at"],
        )

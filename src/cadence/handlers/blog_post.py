"""
Blog Post Handler

Auto-publishes a scheduled blog post when its event comes due.
"""
import logging
from typing import Any, Optional
from uuid import UUID

from .base import ScheduledEventHandler
from ..clock import Clock, utc_now
from ..errors import EventNotFoundError, HandlerExecutionError
from ..models.blog_post import BlogPost, PostStatus
from ..models.scheduled_event import ScheduledEvent

logger = logging.getLogger("cadence.handlers.blog_post")


class BlogPostHandler(ScheduledEventHandler):
    type = "blog_post"
    name = "Blog Post"
    description = "Publishes a blog post at its scheduled time"
    auto_process = True
    icon = "file-text"
    color = "#3b82f6"

    def __init__(self, event_storage, post_storage, clock: Clock = utc_now):
        self.event_storage = event_storage
        self.post_storage = post_storage
        self.clock = clock

    async def validate_handler_data(self, data: Any) -> bool:
        if not isinstance(data, dict) or "post_id" not in data:
            return False
        try:
            UUID(str(data["post_id"]))
        except ValueError:
            return False
        return True

    async def process_scheduled(self, event_id: UUID) -> bool:
        event = await self._load_event(event_id)
        post = await self._load_post(event)

        if post.status == PostStatus.PUBLISHED:
            logger.info(f"Post {post.id} already published, nothing to do for event {event_id}")
            return True

        if post.status != PostStatus.SCHEDULED:
            raise HandlerExecutionError(
                f"Post {post.id} is '{post.status.value}', expected 'scheduled'"
            )

        published = await self.post_storage.publish(post.id, self.clock())
        if published is None:
            # status changed between the read and the write
            logger.warning(f"Post {post.id} was modified while publishing")
            return False

        logger.info(f"Published post '{published.title}' ({published.slug}) for event {event_id}")
        return True

    async def get_event_data(self, event_id: UUID) -> dict:
        event = await self._load_event(event_id)
        post_id = self._post_id(event)
        post = await self.post_storage.get_by_id(post_id) if post_id else None
        if post is None:
            return {"post_id": str(post_id) if post_id else None, "found": False}
        return {"found": True, **post.to_dict()}

    async def _load_event(self, event_id: UUID) -> ScheduledEvent:
        event = await self.event_storage.get_by_id(event_id)
        if event is None:
            raise EventNotFoundError(f"Event not found: {event_id}")
        return event

    async def _load_post(self, event: ScheduledEvent) -> BlogPost:
        post_id = self._post_id(event)
        if post_id is None:
            raise HandlerExecutionError(f"Event {event.id} does not reference a blog post")
        post = await self.post_storage.get_by_id(post_id)
        if post is None:
            raise HandlerExecutionError(f"Blog post not found: {post_id}")
        return post

    @staticmethod
    def _post_id(event: ScheduledEvent) -> Optional[UUID]:
        raw = (event.handler_data or {}).get("post_id") or event.entity_id
        try:
            return UUID(str(raw))
        except ValueError:
            return None

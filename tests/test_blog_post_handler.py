"""Tests for the blog_post and meeting handlers."""

from __future__ import annotations

from uuid import uuid4

import pytest

from cadence.errors import EventNotFoundError, HandlerExecutionError
from cadence.handlers.blog_post import BlogPostHandler
from cadence.handlers.meeting import MeetingHandler
from cadence.models.blog_post import PostStatus
from cadence.models.scheduled_event import EventStatus

pytestmark = pytest.mark.unit


@pytest.fixture
def handler(event_storage, post_storage, clock):
    return BlogPostHandler(event_storage, post_storage, clock=clock)


class TestValidateHandlerData:
    @pytest.mark.parametrize(
        "data, expected",
        [
            ({"post_id": str(uuid4())}, True),
            ({"post_id": "not-a-uuid"}, False),
            ({"slug": "hello"}, False),
            (["post_id"], False),
            (None, False),
        ],
    )
    async def test_requires_post_uuid(self, handler, data, expected):
        assert await handler.validate_handler_data(data) is expected


class TestProcessScheduled:
    async def test_publishes_scheduled_post(self, handler, make_event, post_storage, clock):
        post = post_storage.add(PostStatus.SCHEDULED)
        event = await make_event(handler_type="blog_post", handler_data={"post_id": str(post.id)})

        assert await handler.process_scheduled(event.id) is True

        stored = post_storage.posts[post.id]
        assert stored.status == PostStatus.PUBLISHED
        assert stored.published_at == clock.now

    async def test_falls_back_to_entity_id(self, handler, make_event, post_storage):
        post = post_storage.add(PostStatus.SCHEDULED)
        event = await make_event(handler_type="blog_post", entity_id=str(post.id))

        assert await handler.process_scheduled(event.id) is True
        assert post_storage.posts[post.id].status == PostStatus.PUBLISHED

    async def test_archived_post_raises(self, handler, make_event, post_storage):
        post = post_storage.add(PostStatus.ARCHIVED)
        event = await make_event(handler_type="blog_post", entity_id=str(post.id))

        with pytest.raises(HandlerExecutionError, match="archived"):
            await handler.process_scheduled(event.id)

    async def test_missing_post_raises(self, handler, make_event):
        event = await make_event(handler_type="blog_post", entity_id=str(uuid4()))

        with pytest.raises(HandlerExecutionError, match="Blog post not found"):
            await handler.process_scheduled(event.id)

    async def test_missing_event_raises(self, handler):
        with pytest.raises(EventNotFoundError):
            await handler.process_scheduled(uuid4())

    async def test_lost_race_returns_false(self, handler, make_event, post_storage):
        post = post_storage.add(PostStatus.SCHEDULED)
        event = await make_event(handler_type="blog_post", entity_id=str(post.id))

        async def publish_elsewhere(post_id, published_at):
            return None

        post_storage.publish = publish_elsewhere

        assert await handler.process_scheduled(event.id) is False


class TestGetEventData:
    async def test_projects_post(self, handler, make_event, post_storage):
        post = post_storage.add(PostStatus.SCHEDULED, title="Hello World")
        event = await make_event(handler_type="blog_post", entity_id=str(post.id))

        data = await handler.get_event_data(event.id)

        assert data["found"] is True
        assert data["slug"] == "hello-world"
        assert data["status"] == "scheduled"
        assert post_storage.posts[post.id].status == PostStatus.SCHEDULED

    async def test_missing_post(self, handler, make_event):
        missing = uuid4()
        event = await make_event(handler_type="blog_post", entity_id=str(missing))

        assert await handler.get_event_data(event.id) == {"post_id": str(missing), "found": False}


class TestMeetingHandler:
    async def test_scheduled_meeting_is_held(self, event_storage, make_event):
        event = await make_event()
        assert await MeetingHandler(event_storage).process_scheduled(event.id) is True

    async def test_cancelled_meeting_refuses(self, event_storage, make_event):
        event = await make_event(status=EventStatus.CANCELLED)
        assert await MeetingHandler(event_storage).process_scheduled(event.id) is False

    async def test_unknown_meeting_raises(self, event_storage):
        with pytest.raises(EventNotFoundError):
            await MeetingHandler(event_storage).process_scheduled(uuid4())

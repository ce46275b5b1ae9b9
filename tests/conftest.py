"""Shared fixtures: in-memory storages, a controllable clock and wired services."""

from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from uuid import UUID, uuid4

import pytest

from cadence.handlers.manifest import build_handler_registry
from cadence.models.actor import Actor
from cadence.models.availability import AvailabilityPreferences
from cadence.models.blog_post import BlogPost, PostStatus
from cadence.models.scheduled_event import ProcessingStatus, ScheduledEvent
from cadence.services.availability_service import AvailabilityService
from cadence.services.batch_processor import BatchProcessor
from cadence.services.scheduling_service import SchedulingService

# Monday 2 March 2026, noon UTC
NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ---------------------------------------------------------------------------
# In-memory storages
# ---------------------------------------------------------------------------


class InMemoryEventStorage:
    """Mirrors ScheduledEventStorage; values are copied in and out like rows."""

    def __init__(self):
        self.events: Dict[UUID, ScheduledEvent] = {}
        self.claim_refused: set = set()

    def _live(self) -> List[ScheduledEvent]:
        rows = [e for e in self.events.values() if not e.is_deleted]
        return sorted(rows, key=lambda e: e.start_time)

    @staticmethod
    def _out(events) -> List[ScheduledEvent]:
        return [copy.deepcopy(e) for e in events]

    async def create(self, event: ScheduledEvent) -> ScheduledEvent:
        self.events[event.id] = copy.deepcopy(event)
        return copy.deepcopy(event)

    async def get_by_id(self, event_id: UUID) -> Optional[ScheduledEvent]:
        event = self.events.get(event_id)
        return copy.deepcopy(event) if event else None

    async def get_by_public_id(self, public_id: str) -> Optional[ScheduledEvent]:
        for event in self.events.values():
            if event.public_id == public_id:
                return copy.deepcopy(event)
        return None

    async def public_id_exists(self, public_id: str) -> bool:
        return any(e.public_id == public_id for e in self.events.values())

    async def update(self, event: ScheduledEvent) -> ScheduledEvent:
        self.events[event.id] = copy.deepcopy(event)
        return copy.deepcopy(event)

    async def claim_for_processing(self, event_id: UUID, now: datetime) -> Optional[ScheduledEvent]:
        event = self.events.get(event_id)
        if (
            event is None
            or event_id in self.claim_refused
            or event.is_deleted
            or event.processing_status != ProcessingStatus.PENDING
        ):
            return None
        event.processing_status = ProcessingStatus.PROCESSING
        event.updated_at = now
        return copy.deepcopy(event)

    async def list_by_entity(self, entity_type, entity_id, include_deleted=False):
        rows = self.events.values() if include_deleted else self._live()
        rows = [e for e in rows if e.entity_type == entity_type and e.entity_id == entity_id]
        return self._out(sorted(rows, key=lambda e: e.start_time))

    async def list_by_handler(self, handler_type):
        return self._out(e for e in self._live() if e.handler_type == handler_type)

    async def list_by_organizer(self, organizer_id):
        return self._out(e for e in self._live() if e.organizer_id == organizer_id)

    async def list_by_attendee(self, user_id):
        return self._out(e for e in self._live() if e.find_attendee(user_id) is not None)

    async def list_by_start_range(self, start, end):
        return self._out(e for e in self._live() if start <= e.start_time <= end)

    async def list_by_processing_status(self, status):
        return self._out(e for e in self._live() if e.processing_status == status)

    async def list_due_for_processing(self, now):
        return self._out(e for e in self._live() if e.is_due(now))


class InMemoryAvailabilityStorage:
    def __init__(self):
        self.records: Dict[UUID, AvailabilityPreferences] = {}

    async def get_active_for_user(self, user_id):
        for prefs in self.records.values():
            if prefs.user_id == user_id and prefs.deleted_at is None:
                return copy.deepcopy(prefs)
        return None

    async def create(self, prefs):
        self.records[prefs.id] = copy.deepcopy(prefs)
        return copy.deepcopy(prefs)

    async def update(self, prefs):
        self.records[prefs.id] = copy.deepcopy(prefs)
        return copy.deepcopy(prefs)


class InMemoryBlogPostStorage:
    def __init__(self):
        self.posts: Dict[UUID, BlogPost] = {}

    def add(self, status: PostStatus = PostStatus.SCHEDULED, title: str = "Launch notes") -> BlogPost:
        post = BlogPost(id=uuid4(), title=title, slug=title.lower().replace(" ", "-"), status=status)
        self.posts[post.id] = post
        return copy.deepcopy(post)

    async def get_by_id(self, post_id):
        post = self.posts.get(post_id)
        return copy.deepcopy(post) if post else None

    async def publish(self, post_id, published_at):
        post = self.posts.get(post_id)
        if post is None or post.status != PostStatus.SCHEDULED:
            return None
        post.status = PostStatus.PUBLISHED
        post.published_at = published_at
        post.updated_at = published_at
        return copy.deepcopy(post)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def actor() -> Actor:
    return Actor(id=uuid4(), name="Ada Organizer")


@pytest.fixture
def event_storage() -> InMemoryEventStorage:
    return InMemoryEventStorage()


@pytest.fixture
def availability_storage() -> InMemoryAvailabilityStorage:
    return InMemoryAvailabilityStorage()


@pytest.fixture
def post_storage() -> InMemoryBlogPostStorage:
    return InMemoryBlogPostStorage()


@pytest.fixture
def registry(event_storage, post_storage, clock):
    return build_handler_registry(event_storage, post_storage, clock=clock)


@pytest.fixture
def scheduling_service(event_storage, registry, clock) -> SchedulingService:
    return SchedulingService(event_storage, registry, max_retry_attempts=3, clock=clock)


@pytest.fixture
def availability_service(event_storage, availability_storage, clock) -> AvailabilityService:
    return AvailabilityService(event_storage, availability_storage, clock=clock)


@pytest.fixture
def batch_processor(event_storage, registry, clock) -> BatchProcessor:
    return BatchProcessor(event_storage, registry, max_retry_attempts=3, clock=clock)


@pytest.fixture
def make_event(event_storage):
    """Insert an event straight into storage, bypassing validation."""

    async def _make(**overrides) -> ScheduledEvent:
        start = overrides.pop("start_time", NOW - timedelta(minutes=5))
        fields = {
            "public_id": f"evt_{uuid4().hex[:12]}",
            "title": "Standup",
            "entity_type": "meeting",
            "entity_id": "room-1",
            "handler_type": "meeting",
            "auto_process": True,
            "start_time": start,
            "end_time": start + timedelta(minutes=30),
            "organizer_id": uuid4(),
            "created_at": NOW - timedelta(days=1),
        }
        fields.update(overrides)
        return await event_storage.create(ScheduledEvent(**fields))

    return _make

"""Tests for the batch processor: claims, retries, isolation and recurrence."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from cadence.handlers.base import ScheduledEventHandler
from cadence.models.blog_post import PostStatus
from cadence.models.scheduled_event import (
    Attendee,
    AttendeeStatus,
    EventStatus,
    ProcessingStatus,
    RecurrenceFrequency,
    RecurrencePattern,
)
from cadence.services.batch_processor import BatchProcessor
from conftest import NOW

pytestmark = pytest.mark.unit


class ScriptedHandler(ScheduledEventHandler):
    """Succeeds unless the event id is listed in `fail_for`."""

    type = "scripted"
    auto_process = True

    def __init__(self, fail_for=(), result=True):
        self.fail_for = set(fail_for)
        self.result = result
        self.processed = []

    async def process_scheduled(self, event_id):
        if event_id in self.fail_for:
            raise RuntimeError(f"cannot process {event_id}")
        self.processed.append(event_id)
        return self.result


@pytest.fixture
def scripted(registry):
    handler = ScriptedHandler()
    registry.register(handler)
    return handler


# ---------------------------------------------------------------------------
# Blog post publishing
# ---------------------------------------------------------------------------


class TestBlogPostScenario:
    async def test_publishes_due_post(self, batch_processor, scheduling_service, post_storage, event_storage, clock, actor):
        post = post_storage.add(PostStatus.SCHEDULED)
        event = await scheduling_service.create_event(
            actor,
            title="Publish launch notes",
            entity_type="blog_post",
            entity_id=str(post.id),
            handler_type="blog_post",
            handler_data={"post_id": str(post.id)},
            start_time=NOW + timedelta(minutes=10),
            end_time=NOW + timedelta(minutes=11),
            organizer_id=actor.id,
        )

        early = await batch_processor.process_due_events()
        assert early.total == 0

        clock.advance(minutes=15)
        result = await batch_processor.process_due_events()

        assert result.succeeded == 1
        assert result.failed == 0
        stored = event_storage.events[event.id]
        assert stored.processing_status == ProcessingStatus.COMPLETED
        assert stored.status == EventStatus.COMPLETED
        assert stored.processed_at == clock.now
        assert post_storage.posts[post.id].status == PostStatus.PUBLISHED
        assert post_storage.posts[post.id].published_at == clock.now
        assert len(event_storage.events) == 1

    async def test_already_published_post_is_success(self, batch_processor, make_event, post_storage, event_storage):
        post = post_storage.add(PostStatus.PUBLISHED)
        event = await make_event(handler_type="blog_post", entity_id=str(post.id))

        result = await batch_processor.process_due_events()

        assert result.succeeded == 1
        assert event_storage.events[event.id].status == EventStatus.COMPLETED

    async def test_draft_post_fails_and_requeues(self, batch_processor, make_event, post_storage, event_storage):
        post = post_storage.add(PostStatus.DRAFT)
        event = await make_event(handler_type="blog_post", handler_data={"post_id": str(post.id)})

        result = await batch_processor.process_due_events()

        assert result.failed == 1
        stored = event_storage.events[event.id]
        assert stored.processing_status == ProcessingStatus.PENDING
        assert stored.processing_retry_count == 1
        assert "draft" in stored.processing_error
        assert post_storage.posts[post.id].status == PostStatus.DRAFT


# ---------------------------------------------------------------------------
# Selection and isolation
# ---------------------------------------------------------------------------


class TestSelection:
    async def test_nothing_due(self, batch_processor):
        result = await batch_processor.process_due_events()
        assert result.to_dict() == {"total": 0, "succeeded": 0, "failed": 0, "skipped": 0}

    async def test_only_due_events_are_processed(self, batch_processor, scripted, make_event):
        due = await make_event(handler_type="scripted")
        await make_event(handler_type="scripted", start_time=NOW + timedelta(minutes=1))
        await make_event(handler_type="scripted", auto_process=False)
        await make_event(handler_type="scripted", status=EventStatus.CANCELLED)
        await make_event(handler_type="scripted", processing_status=ProcessingStatus.FAILED)
        await make_event(handler_type="scripted", deleted_at=NOW)

        result = await batch_processor.process_due_events()

        assert result.total == 1
        assert scripted.processed == [due.id]

    async def test_one_failure_does_not_affect_siblings(self, batch_processor, scripted, make_event, event_storage):
        events = [
            await make_event(handler_type="scripted", start_time=NOW - timedelta(minutes=i + 1))
            for i in range(5)
        ]
        bad = events[2]
        scripted.fail_for = {bad.id}

        result = await batch_processor.process_due_events()

        assert result.total == 5
        assert result.succeeded == 4
        assert result.failed == 1
        for event in events:
            stored = event_storage.events[event.id]
            if event.id == bad.id:
                assert stored.processing_status == ProcessingStatus.PENDING
                assert stored.processing_retry_count == 1
            else:
                assert stored.processing_status == ProcessingStatus.COMPLETED

    async def test_unclaimable_event_is_skipped(self, batch_processor, scripted, make_event, event_storage):
        taken = await make_event(handler_type="scripted")
        free = await make_event(handler_type="scripted")
        event_storage.claim_refused.add(taken.id)

        result = await batch_processor.process_due_events()

        assert result.skipped == 1
        assert result.succeeded == 1
        assert scripted.processed == [free.id]
        assert event_storage.events[taken.id].processing_status == ProcessingStatus.PENDING

    async def test_parallel_passes(self, event_storage, registry, clock, scripted, make_event):
        for i in range(6):
            await make_event(handler_type="scripted", start_time=NOW - timedelta(minutes=i + 1))
        processor = BatchProcessor(event_storage, registry, concurrency=3, clock=clock)

        result = await processor.process_due_events()

        assert result.succeeded == 6
        assert len(set(scripted.processed)) == 6


# ---------------------------------------------------------------------------
# Failures and retries
# ---------------------------------------------------------------------------


class TestFailures:
    async def test_last_retry_marks_failed(self, batch_processor, scripted, make_event, event_storage):
        event = await make_event(handler_type="scripted", processing_retry_count=2)
        scripted.fail_for = {event.id}

        result = await batch_processor.process_due_events()

        assert result.failed == 1
        stored = event_storage.events[event.id]
        assert stored.processing_status == ProcessingStatus.FAILED
        assert stored.processing_retry_count == 3
        assert "cannot process" in stored.processing_error

    async def test_retries_until_exhausted(self, batch_processor, scripted, make_event, event_storage):
        event = await make_event(handler_type="scripted")
        scripted.fail_for = {event.id}

        for _ in range(3):
            await batch_processor.process_due_events()

        stored = event_storage.events[event.id]
        assert stored.processing_status == ProcessingStatus.FAILED
        assert stored.processing_retry_count == 3
        assert (await batch_processor.process_due_events()).total == 0

    async def test_falsy_result_counts_as_failure(self, batch_processor, registry, make_event, event_storage):
        registry.register(ScriptedHandler(result=False))
        event = await make_event(handler_type="scripted")

        result = await batch_processor.process_due_events()

        assert result.failed == 1
        assert event_storage.events[event.id].processing_error == "Handler processing failed"

    async def test_missing_handler_is_retryable(self, batch_processor, registry, make_event, event_storage):
        registry.set_enabled("meeting", False)
        event = await make_event(handler_type="meeting")

        result = await batch_processor.process_due_events()

        assert result.failed == 1
        stored = event_storage.events[event.id]
        assert stored.processing_status == ProcessingStatus.PENDING
        assert stored.processing_error == "Handler not found: meeting"

    async def test_before_process_failure_skips_processing(self, batch_processor, scripted, make_event):
        event = await make_event(handler_type="scripted")
        scripted.before_process = AsyncMock(side_effect=RuntimeError("not ready"))
        scripted.on_process_error = AsyncMock()

        result = await batch_processor.process_due_events()

        assert result.failed == 1
        assert scripted.processed == []
        scripted.on_process_error.assert_awaited_once()
        assert scripted.on_process_error.await_args.args[0] == event.id

    async def test_on_process_error_failure_is_swallowed(self, batch_processor, scripted, make_event, event_storage):
        event = await make_event(handler_type="scripted")
        scripted.fail_for = {event.id}
        scripted.on_process_error = AsyncMock(side_effect=RuntimeError("hook broke"))

        result = await batch_processor.process_due_events()

        assert result.failed == 1
        assert event_storage.events[event.id].processing_retry_count == 1

    async def test_after_process_failure_keeps_completion(self, batch_processor, scripted, make_event, event_storage):
        event = await make_event(handler_type="scripted")
        scripted.after_process = AsyncMock(side_effect=RuntimeError("audit down"))

        result = await batch_processor.process_due_events()

        assert result.succeeded == 1
        assert event_storage.events[event.id].status == EventStatus.COMPLETED
        scripted.after_process.assert_awaited_once_with(event.id)


# ---------------------------------------------------------------------------
# Recurrence
# ---------------------------------------------------------------------------


class TestRecurrenceSpawning:
    async def test_spawns_next_occurrence(self, batch_processor, scripted, make_event, event_storage):
        start = NOW - timedelta(minutes=30)
        parent = await make_event(
            handler_type="scripted",
            start_time=start,
            end_time=start + timedelta(minutes=45),
            is_recurring=True,
            recurrence_pattern=RecurrencePattern(frequency=RecurrenceFrequency.WEEKLY),
            attendees=[Attendee(user_id=uuid4(), status=AttendeeStatus.ACCEPTED, sent=True)],
            reminders=[{"type": "push", "minutes_before": 5, "sent": True}],
            processing_retry_count=1,
        )

        await batch_processor.process_due_events()

        children = [e for e in event_storage.events.values() if e.parent_event_id == parent.id]
        assert len(children) == 1
        child = children[0]
        assert child.start_time == start + timedelta(weeks=1)
        assert child.duration == timedelta(minutes=45)
        assert child.occurrence_number == 2
        assert child.processing_status == ProcessingStatus.PENDING
        assert child.status == EventStatus.SCHEDULED
        assert child.processing_retry_count == 0
        assert child.processed_at is None
        assert child.public_id != parent.public_id
        assert child.attendees[0].status == AttendeeStatus.PENDING
        assert child.attendees[0].sent is False
        assert child.reminders[0]["sent"] is False

    async def test_no_child_past_end_date(self, batch_processor, scripted, make_event, event_storage):
        await make_event(
            handler_type="scripted",
            is_recurring=True,
            recurrence_pattern=RecurrencePattern(
                frequency=RecurrenceFrequency.DAILY, end_date=NOW + timedelta(hours=1)
            ),
        )

        await batch_processor.process_due_events()

        assert len(event_storage.events) == 1

    async def test_series_stops_at_max_occurrences(self, batch_processor, scripted, make_event, event_storage, clock):
        await make_event(
            handler_type="scripted",
            is_recurring=True,
            recurrence_pattern=RecurrencePattern(frequency=RecurrenceFrequency.DAILY, max_occurrences=2),
        )

        await batch_processor.process_due_events()
        clock.advance(days=1)
        await batch_processor.process_due_events()
        clock.advance(days=1)
        result = await batch_processor.process_due_events()

        assert result.total == 0
        assert sorted(e.occurrence_number for e in event_storage.events.values()) == [1, 2]

    async def test_failed_event_does_not_spawn(self, batch_processor, scripted, make_event, event_storage):
        parent = await make_event(
            handler_type="scripted",
            is_recurring=True,
            recurrence_pattern=RecurrencePattern(frequency=RecurrenceFrequency.DAILY),
        )
        scripted.fail_for = {parent.id}

        await batch_processor.process_due_events()

        assert len(event_storage.events) == 1

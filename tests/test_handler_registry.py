"""Tests for the handler registry and manifest."""

from __future__ import annotations

import pytest

from cadence.errors import HandlerNotFoundError
from cadence.handlers.base import ScheduledEventHandler
from cadence.handlers.manifest import build_handler_registry
from cadence.handlers.registry import HandlerRegistry

pytestmark = pytest.mark.unit


class EchoHandler(ScheduledEventHandler):
    type = "echo"
    name = "Echo"
    auto_process = True

    async def process_scheduled(self, event_id):
        return True


class ManualHandler(ScheduledEventHandler):
    type = "manual"
    auto_process = False

    async def process_scheduled(self, event_id):
        return True


class UntypedHandler(ScheduledEventHandler):
    async def process_scheduled(self, event_id):
        return True


class TestHandlerRegistry:
    def test_register_and_get(self):
        registry = HandlerRegistry()
        handler = EchoHandler()
        registry.register(handler)

        assert registry.get("echo") is handler
        assert registry.is_registered("echo")
        assert registry.is_enabled("echo")
        assert len(registry) == 1

    def test_unknown_type_returns_none(self):
        assert HandlerRegistry().get("nope") is None

    def test_disabled_handler_is_not_resolvable(self):
        registry = HandlerRegistry()
        registry.register(EchoHandler(), enabled=False)

        assert registry.get("echo") is None
        assert registry.is_registered("echo")
        assert not registry.is_enabled("echo")

    def test_set_enabled_toggles(self):
        registry = HandlerRegistry()
        registry.register(EchoHandler())

        registry.set_enabled("echo", False)
        assert registry.get("echo") is None

        registry.set_enabled("echo", True)
        assert registry.get("echo") is not None

    def test_set_enabled_unknown_raises(self):
        with pytest.raises(HandlerNotFoundError, match="Handler not found: ghost"):
            HandlerRegistry().set_enabled("ghost", True)

    def test_register_replaces_same_type(self):
        registry = HandlerRegistry()
        first, second = EchoHandler(), EchoHandler()
        registry.register(first)
        registry.register(second)

        assert registry.get("echo") is second
        assert len(registry) == 1

    def test_register_requires_type(self):
        with pytest.raises(ValueError):
            HandlerRegistry().register(UntypedHandler())

    def test_list_auto_processable_skips_manual_and_disabled(self):
        registry = HandlerRegistry()
        registry.register(EchoHandler())
        registry.register(ManualHandler())

        assert [h.type for h in registry.list_auto_processable()] == ["echo"]

        registry.set_enabled("echo", False)
        assert registry.list_auto_processable() == []
        assert [h.type for h in registry.list_enabled()] == ["manual"]

    def test_list_all_returns_copies(self):
        registry = HandlerRegistry()
        registry.register(EchoHandler())

        registration = registry.list_all()[0]
        registration.enabled = False

        assert registry.is_enabled("echo")


class TestManifest:
    def test_builds_shipped_handlers(self, event_storage, post_storage):
        registry = build_handler_registry(event_storage, post_storage)

        assert registry.get("blog_post").auto_process is True
        assert registry.get("meeting").auto_process is False

    def test_disabled_handlers_are_registered_but_off(self, event_storage, post_storage):
        registry = build_handler_registry(event_storage, post_storage, disabled=["meeting", "unknown"])

        assert registry.is_registered("meeting")
        assert registry.get("meeting") is None
        assert registry.get("blog_post") is not None


class TestHandlerDefaults:
    async def test_default_hooks_are_noops(self):
        handler = EchoHandler()
        assert await handler.validate_handler_data({"anything": 1}) is True
        assert await handler.before_process(None) is None
        assert await handler.after_process(None) is None
        assert await handler.on_process_error(None, RuntimeError("x")) is None
        assert await handler.get_event_data(None) == {}

    def test_to_dict_describes_handler(self):
        data = EchoHandler().to_dict()
        assert data["type"] == "echo"
        assert data["name"] == "Echo"
        assert data["auto_process"] is True

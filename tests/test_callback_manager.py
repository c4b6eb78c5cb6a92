"""Tests for the callback manager."""

import pytest

from baton.domain.callbacks.callback_manager import AGENT_HANDOFF, TOOL_START, CallbackManager


def test_handlers_fire_in_registration_order():
    """Test handlers receive the payload in order."""
    seen = []
    manager = CallbackManager()
    manager.register(TOOL_START, lambda name, args: seen.append(("first", name)))
    manager.register(TOOL_START, lambda name, args: seen.append(("second", name)))

    manager.emit_tool_start("search", {"q": "x"})

    assert seen == [("first", "search"), ("second", "search")]


def test_failing_handler_is_isolated():
    """Test a raising handler does not stop the others or the caller."""
    seen = []

    def broken(from_agent, to_agent, reason):
        raise RuntimeError("observer bug")

    manager = CallbackManager({AGENT_HANDOFF: [broken, lambda *args: seen.append(args)]})

    manager.emit_agent_handoff("Triage", "Billing", "refund")

    assert seen == [("Triage", "Billing", "refund")]


def test_register_validates_event_and_handler():
    """Test unknown events and non-callables are rejected."""
    manager = CallbackManager()

    with pytest.raises(ValueError, match="Unknown callback event"):
        manager.register("agent_sleeping", print)
    with pytest.raises(TypeError):
        manager.register(TOOL_START, "not callable")


def test_emit_without_handlers_is_noop():
    """Test events without handlers do nothing."""
    manager = CallbackManager()

    manager.emit_agent_thinking("Triage", "hello")
    manager.emit("tool_complete", "search", "ok")

    assert manager.handlers(TOOL_START) == []

"""Orchestration exceptions."""

from typing import Any, Dict, Optional


class BatonError(Exception):
    """Base exception for baton."""
    pass


class ToolError(BatonError):
    """Tool calling errors."""

    def __init__(self, message: str, tool_name: Optional[str] = None):
        super().__init__(message)
        self.tool_name = tool_name


class ToolArgumentError(ToolError):
    """Missing, unknown or uncoercible arguments supplied by the model."""

    def __init__(
        self,
        message: str,
        tool_name: Optional[str] = None,
        arguments: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, tool_name=tool_name)
        self.arguments = arguments or {}


class ToolExecutionError(ToolError):
    """User tool code raised."""

    def __init__(self, message: str, tool_name: Optional[str] = None, original: Optional[BaseException] = None):
        super().__init__(message, tool_name=tool_name)
        self.original = original


class HandoffLoopExceeded(BatonError):
    """Handoff count went over the configured bound."""

    def __init__(self, max_handoffs: int):
        super().__init__(f"Maximum handoffs ({max_handoffs}) exceeded")
        self.max_handoffs = max_handoffs


class ProviderError(BatonError):
    """Model provider call failed (network, auth, malformed response, unknown provider)."""
    pass


class CallbackError(BatonError):
    """An observer handler raised. Never surfaced to callers."""

    def __init__(self, event: str, original: BaseException):
        super().__init__(f"Callback error for {event}: {original}")
        self.event = event
        self.original = original


class AgentExecutionError(BatonError):
    """Agent could not complete its turn."""
    pass


class MaxTurnsExceeded(AgentExecutionError):
    """Agent kept calling tools past the per-invocation turn limit."""

    def __init__(self, agent_name: str, max_turns: int):
        super().__init__(f"Agent '{agent_name}' exceeded maximum turns ({max_turns})")
        self.agent_name = agent_name
        self.max_turns = max_turns


class AgentNotFoundError(AgentExecutionError):
    """Handoff or starting agent could not be resolved in the registry."""
    pass

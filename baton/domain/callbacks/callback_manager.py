from typing import Dict, List, Any, Callable, Optional
import structlog

from baton.exceptions import CallbackError

logger = structlog.get_logger(__name__)

AGENT_THINKING = "agent_thinking"
TOOL_START = "tool_start"
TOOL_COMPLETE = "tool_complete"
AGENT_HANDOFF = "agent_handoff"

EVENTS = (AGENT_THINKING, TOOL_START, TOOL_COMPLETE, AGENT_HANDOFF)


class CallbackManager:
    """Registry of observer callbacks fired at lifecycle points

    Handlers run synchronously in registration order. A handler that raises
    is logged and skipped; the remaining handlers and the run carry on.
    """

    def __init__(self, callbacks: Optional[Dict[str, List[Callable[..., Any]]]] = None):
        self._callbacks: Dict[str, List[Callable[..., Any]]] = {event: [] for event in EVENTS}
        for event, handlers in (callbacks or {}).items():
            for handler in handlers:
                self.register(event, handler)

    def register(self, event: str, handler: Callable[..., Any]) -> "CallbackManager":
        """Register a handler for an event"""

        if event not in self._callbacks:
            raise ValueError(f"Unknown callback event '{event}'. Supported: {', '.join(EVENTS)}")
        if not callable(handler):
            raise TypeError(f"Callback for '{event}' must be callable")

        self._callbacks[event].append(handler)
        return self

    def handlers(self, event: str) -> List[Callable[..., Any]]:
        return list(self._callbacks.get(event, []))

    def fire(self, event: str, *payload: Any) -> None:
        """Call every handler for the event, isolating failures"""

        for handler in list(self._callbacks.get(event, [])):
            try:
                handler(*payload)
            except Exception as e:
                error = CallbackError(event, e)
                logger.warning(
                    "Callback failed",
                    event=event,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(error),
                    exc_info=True
                )

    emit = fire

    def emit_agent_thinking(self, agent_name: str, input: Any) -> None:
        self.fire(AGENT_THINKING, agent_name, input)

    def emit_tool_start(self, tool_name: str, args: Dict[str, Any]) -> None:
        self.fire(TOOL_START, tool_name, args)

    def emit_tool_complete(self, tool_name: str, result: Any) -> None:
        self.fire(TOOL_COMPLETE, tool_name, result)

    def emit_agent_handoff(self, from_agent: str, to_agent: str, reason: Optional[str]) -> None:
        self.fire(AGENT_HANDOFF, from_agent, to_agent, reason)

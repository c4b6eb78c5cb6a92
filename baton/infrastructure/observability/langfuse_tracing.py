from typing import Dict, Any, List, Optional, Tuple, Union
from langfuse import Langfuse
import structlog

from baton.domain.callbacks.callback_manager import (
    AGENT_HANDOFF, AGENT_THINKING, TOOL_COMPLETE, TOOL_START, CallbackManager
)

logger = structlog.get_logger(__name__)


class LangfuseInstrumentation:
    """Mirrors run callbacks into Langfuse spans

    Each agent invocation becomes a span, each tool call a child span of the
    current agent span, and each handoff an event on the agent being left.
    Span state is per instance: attach one instrumentation per Runner whose
    runs do not overlap.
    """

    def __init__(self, client: Optional[Langfuse] = None, session_id: Optional[str] = None):
        self.langfuse = client if client is not None else Langfuse()
        self.session_id = session_id
        self._agent_span = None
        self._tool_spans: List[Tuple[str, Any]] = []

    def attach(self, target: Any) -> "LangfuseInstrumentation":
        """Register on a Runner or a CallbackManager"""

        callbacks: Union[CallbackManager, Any] = getattr(target, "callbacks", target)
        callbacks.register(AGENT_THINKING, self.on_agent_thinking)
        callbacks.register(TOOL_START, self.on_tool_start)
        callbacks.register(TOOL_COMPLETE, self.on_tool_complete)
        callbacks.register(AGENT_HANDOFF, self.on_agent_handoff)
        return self

    def on_agent_thinking(self, agent_name: str, input: Any) -> None:
        self._end_agent_span()

        metadata: Dict[str, Any] = {"agent.name": agent_name}
        if self.session_id:
            metadata["session.id"] = self.session_id

        self._agent_span = self.langfuse.start_span(
            name=f"{agent_name} Agent",
            input=input,
            metadata=metadata
        )

    def on_tool_start(self, tool_name: str, args: Dict[str, Any]) -> None:
        parent = self._agent_span if self._agent_span is not None else self.langfuse
        span = parent.start_span(
            name=f"tool.{tool_name}",
            input=args,
            metadata={"tool.name": tool_name}
        )
        self._tool_spans.append((tool_name, span))

    def on_tool_complete(self, tool_name: str, result: Any) -> None:
        # Innermost open span for this tool
        for index in range(len(self._tool_spans) - 1, -1, -1):
            name, span = self._tool_spans[index]
            if name == tool_name:
                del self._tool_spans[index]
                failed = isinstance(result, str) and result.startswith("ERROR:")
                if failed:
                    span.update(output=result, level="ERROR", status_message=result)
                else:
                    span.update(output=result)
                span.end()
                return

        logger.debug("Tool completion without open span", tool_name=tool_name)

    def on_agent_handoff(self, from_agent: str, to_agent: str, reason: Optional[str]) -> None:
        if self._agent_span is None:
            return

        self._agent_span.create_event(
            name="agent.handoff",
            metadata={"from_agent": from_agent, "to_agent": to_agent, "reason": reason}
        )
        self._agent_span.update(output={"handoff_to": to_agent, "reason": reason})
        self._end_agent_span()

    def finish(self) -> None:
        """End open spans and flush buffered observations"""

        for _, span in self._tool_spans:
            span.end()
        self._tool_spans = []
        self._end_agent_span()
        self.langfuse.flush()

    def _end_agent_span(self) -> None:
        if self._agent_span is not None:
            self._agent_span.end()
            self._agent_span = None

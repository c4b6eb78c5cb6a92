import json
import time
from typing import Dict, Any, Optional

from pydantic import BaseModel, Field

from baton.domain.callbacks.callback_manager import CallbackManager
from baton.domain.context.run_context import Context, HandoffResult
from baton.domain.models.conversation import Message, Role, ToolCall
from baton.domain.tool.tool_registry import ToolRegistry
from baton.exceptions import ToolArgumentError, ToolError
from baton.infrastructure.observability.logging import AgentLogger, MetricsCollector, metrics as default_metrics


class ToolOutcome(BaseModel):
    """Result of dispatching one tool call"""
    call_id: str
    tool_name: str
    success: bool
    result: Any = None
    error: Optional[str] = None
    handoff: Optional[HandoffResult] = None
    duration_ms: float = 0.0
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_handoff(self) -> bool:
        return self.handoff is not None

    @property
    def content(self) -> str:
        """Text recorded in history for this call"""
        if not self.success:
            return f"Error: {self.error}"
        return serialize_result(self.result)

    def to_message(self) -> Message:
        return Message(
            role=Role.TOOL,
            content=self.content,
            tool_call_id=self.call_id,
            is_error=not self.success
        )


def serialize_result(result: Any) -> str:
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    if isinstance(result, BaseModel):
        return result.model_dump_json()
    try:
        return json.dumps(result, default=str)
    except (TypeError, ValueError):
        return str(result)


class ToolExecutor:
    """Dispatches model tool calls with callbacks, logging and failure capture

    Argument and execution errors never escape: they become failure outcomes
    that are reported back to the model as tool results.
    """

    def __init__(
        self,
        callbacks: Optional[CallbackManager] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.callbacks = callbacks or CallbackManager()
        self.metrics = metrics or default_metrics
        self.logger = AgentLogger(__name__)

    async def execute(self, call: ToolCall, registry: ToolRegistry, context: Context) -> ToolOutcome:
        """Execute a single tool call"""

        self.callbacks.emit_tool_start(call.name, call.arguments)
        started = time.perf_counter()

        tool = registry.get_tool(call.name)
        handoff: Optional[HandoffResult] = None

        try:
            if tool is None:
                raise ToolArgumentError(
                    f"Tool '{call.name}' not found. Available tools: {registry.names()}",
                    tool_name=call.name,
                    arguments=call.arguments
                )

            result = await tool.invoke(call.arguments, context)
            if tool.is_handoff:
                handoff = context.pending_handoff

            outcome = ToolOutcome(
                call_id=call.id,
                tool_name=call.name,
                success=True,
                result=result,
                handoff=handoff
            )
        except ToolError as e:
            outcome = ToolOutcome(
                call_id=call.id,
                tool_name=call.name,
                success=False,
                error=str(e),
                metadata={"error_type": type(e).__name__}
            )

        outcome.duration_ms = round((time.perf_counter() - started) * 1000, 2)

        self.callbacks.emit_tool_complete(
            call.name, outcome.result if outcome.success else f"ERROR: {outcome.error}"
        )

        self.logger.log_tool_execution(
            tool_name=call.name,
            input_data=call.arguments,
            output_data=outcome.content if outcome.success else None,
            duration_ms=outcome.duration_ms,
            success=outcome.success,
            error=outcome.error
        )
        self.metrics.record_latency("tool", outcome.duration_ms, tags={"tool": call.name})
        self.metrics.increment_counter(
            "tool.calls" if outcome.success else "tool.failures", tags={"tool": call.name}
        )

        return outcome

    def skipped(self, call: ToolCall, reason: str) -> ToolOutcome:
        """Failure outcome for a call that was not executed"""

        return ToolOutcome(
            call_id=call.id,
            tool_name=call.name,
            success=False,
            error=reason,
            metadata={"skipped": True}
        )

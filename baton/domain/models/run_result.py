from typing import Dict, Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from baton.domain.context.run_context import Context, HandoffResult
from baton.domain.models.conversation import Message, ToolCall, Usage


class AgentResponse(BaseModel):
    """Outcome of one agent invocation: a direct answer or a handoff exit"""
    content: Optional[str] = None
    handoff_result: Optional[HandoffResult] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)

    @property
    def is_handoff(self) -> bool:
        return self.handoff_result is not None and self.handoff_result.is_handoff

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class RunResult(BaseModel):
    """Terminal value of a run"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    input: Optional[str] = None
    output: Optional[str] = None
    messages: List[Message] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)
    error: Optional[str] = None
    error_type: Optional[str] = Field(None, description="Error class, e.g. HandoffLoopExceeded")
    last_agent: Optional[str] = None
    context: Optional[Context] = None
    duration: Optional[float] = Field(None, description="Seconds")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.error is None and self.output is not None

    @property
    def failure(self) -> bool:
        return not self.success

    @property
    def content(self) -> Optional[str]:
        return self.output if self.success else self.error

    @classmethod
    def failed(cls, error: BaseException, **kwargs: Any) -> "RunResult":
        return cls(error=str(error) or type(error).__name__, error_type=type(error).__name__, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json", exclude={"context", "messages"})
        data["messages"] = [message.to_record() for message in self.messages]
        data["success"] = self.success
        return data

    def __str__(self) -> str:
        if self.success:
            return f"Success: {self.output}"
        return f"Error: {self.error}"

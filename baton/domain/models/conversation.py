from typing import Dict, Any, List, Optional, Iterable
from pydantic import BaseModel, Field, field_validator
from datetime import datetime, timezone
from enum import Enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """Conversation roles"""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


def normalize_role(value: Any) -> Role:
    """Normalize string, enum or enum-like role values onto Role

    "user", " User ", Role.USER and any enum member whose value or name
    is "user" are all the same role. Anything outside the closed set raises.
    """
    if isinstance(value, Role):
        return value

    candidate = value
    if isinstance(value, Enum):
        candidate = value.value if isinstance(value.value, str) else value.name
    elif not isinstance(value, str):
        candidate = getattr(value, "value", None) or getattr(value, "name", None)

    if isinstance(candidate, str):
        try:
            return Role(candidate.strip().lower())
        except ValueError:
            pass

    raise ValueError(f"Unknown message role: {value!r}")


class ToolCall(BaseModel):
    """A tool invocation requested by the model"""
    id: str = Field(description="Call identifier, echoed by the matching tool result")
    name: str = Field(description="Name of the tool to invoke")
    arguments: Dict[str, Any] = Field(default_factory=dict)


class Message(BaseModel):
    """A single conversation turn record"""
    role: Role
    content: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = Field(None, description="Calls requested on an assistant turn")
    tool_call_id: Optional[str] = Field(None, description="Call this tool turn answers")
    agent_name: Optional[str] = Field(None, description="Agent that produced an assistant turn")
    is_error: bool = Field(default=False, description="Tool turn reports a failure")
    timestamp: datetime = Field(default_factory=_utcnow)

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> Role:
        return normalize_role(value)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_record(self) -> Dict[str, Any]:
        """Serialize into the persisted conversation record format"""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Message":
        return cls.model_validate(record)


def validate_pairing(messages: Iterable[Message]) -> None:
    """Check every tool result answers exactly one earlier assistant tool call"""

    issued: Dict[str, int] = {}
    answered = set()

    for index, message in enumerate(messages):
        if message.role == Role.ASSISTANT and message.tool_calls:
            for call in message.tool_calls:
                if call.id in issued:
                    raise ValueError(f"Duplicate tool call id '{call.id}' at message {index}")
                issued[call.id] = index
        elif message.role == Role.TOOL:
            call_id = message.tool_call_id
            if call_id is None or call_id not in issued:
                raise ValueError(f"Tool result at message {index} has no matching tool call: {call_id!r}")
            if call_id in answered:
                raise ValueError(f"Tool call '{call_id}' answered more than once")
            answered.add(call_id)


class Usage(BaseModel):
    """Token usage, accumulated per run"""
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def add(self, other: Optional["Usage"]) -> "Usage":
        if other is None:
            return self
        self.input_tokens += other.input_tokens or 0
        self.output_tokens += other.output_tokens or 0
        self.total_tokens += other.total_tokens or 0
        return self


class ProviderResponse(BaseModel):
    """Normalized reply of a model provider call"""
    content: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)
    finish_reason: Optional[str] = None
    usage: Usage = Field(default_factory=Usage)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

from collections.abc import Mapping
from typing import Dict, Any, List, Optional, Iterable
from pydantic import BaseModel, Field
from datetime import datetime, timezone

from baton.domain.models.conversation import Message, Role


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentTransition(BaseModel):
    """One recorded handoff between agents"""
    from_agent: str
    to_agent: str
    reason: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class HandoffResult(BaseModel):
    """Pending-handoff marker written by a handoff tool"""
    target: str = Field(description="Registry identifier of the target agent")
    target_name: Optional[str] = Field(None, description="Display name of the target agent")
    reason: Optional[str] = None

    @property
    def is_handoff(self) -> bool:
        return bool(self.target)


class Context(BaseModel):
    """Shared state for one logical run

    The state bag is passed by reference to every agent and tool of the run.
    Keys are caller-defined and never interpreted by the orchestration core;
    the only slot the core owns is ``pending_handoff``.
    """
    data: Dict[str, Any] = Field(default_factory=dict, description="Caller state bag")
    agent_history: List[AgentTransition] = Field(default_factory=list)
    pending_handoff: Optional[HandoffResult] = None
    conversation_history: List[Message] = Field(default_factory=list)
    active_agent: Optional[str] = Field(None, description="Agent that answered last")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def _touch(self) -> None:
        self.updated_at = _utcnow()

    # State bag

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value
        self._touch()

    def update(self, values: "Mapping[str, Any] | Context") -> None:
        """Update multiple values at once"""
        if isinstance(values, Context):
            values = values.data
        elif not isinstance(values, Mapping):
            raise TypeError(f"Expected a mapping or Context, got {type(values).__name__}")

        for key, value in values.items():
            self.data[key] = value
        self._touch()

    def has(self, key: str) -> bool:
        return key in self.data

    def keys(self) -> List[str]:
        return list(self.data.keys())

    def clear(self) -> None:
        """Clear the state bag, keeping history and timestamps"""
        self.data.clear()
        self._touch()

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: object) -> bool:
        return key in self.data

    # Transitions

    def record_transition(self, from_agent: str, to_agent: str, reason: Optional[str] = None) -> AgentTransition:
        """Append an agent transition to the history"""
        transition = AgentTransition(from_agent=from_agent, to_agent=to_agent, reason=reason)
        self.agent_history.append(transition)
        self._touch()
        return transition

    @property
    def transitions(self) -> List[AgentTransition]:
        return list(self.agent_history)

    # Pending handoff

    def set_pending_handoff(self, result: HandoffResult) -> None:
        self.pending_handoff = result
        self._touch()

    def consume_pending_handoff(self) -> Optional[HandoffResult]:
        """Read and clear the pending handoff"""
        result = self.pending_handoff
        self.pending_handoff = None
        return result

    def clear_pending_handoff(self) -> None:
        self.pending_handoff = None

    # Conversation

    def append_messages(self, messages: Iterable[Message]) -> None:
        self.conversation_history.extend(messages)
        self._touch()

    def last_agent_name(self) -> Optional[str]:
        """Most recent assistant attribution in the conversation"""
        for message in reversed(self.conversation_history):
            if message.role == Role.ASSISTANT and message.agent_name:
                return message.agent_name
        return None

    # Persistence

    def to_record(self) -> Dict[str, Any]:
        """Serialize for session storage

        The pending handoff is never persisted: it must be consumed within
        the turn that set it. State bag values must be JSON-serializable.
        """
        record = self.model_dump(mode="json", exclude={"pending_handoff", "conversation_history"})
        record["conversation_history"] = [message.to_record() for message in self.conversation_history]
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Context":
        return cls.model_validate(record)

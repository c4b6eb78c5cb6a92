from typing import List, Optional, Iterable

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

from baton.domain.models.conversation import Message, Role, normalize_role


def to_langchain_message(message: Message) -> BaseMessage:
    """Convert a conversation record into its provider-facing message"""

    role = normalize_role(message.role)
    content = message.content or ""

    if role == Role.SYSTEM:
        return SystemMessage(content=content)
    if role == Role.USER:
        return HumanMessage(content=content)
    if role == Role.ASSISTANT:
        tool_calls = [
            {"name": call.name, "args": dict(call.arguments), "id": call.id, "type": "tool_call"}
            for call in message.tool_calls or []
        ]
        return AIMessage(content=content, tool_calls=tool_calls)
    return ToolMessage(
        content=content,
        tool_call_id=message.tool_call_id or "",
        status="error" if message.is_error else "success"
    )


class ChatSession:
    """Fresh provider-facing chat state rebuilt from conversation history

    Each model call starts from a new session, so providers stay stateless
    while agents remain conversationally stateful. Restoring the same history
    twice produces equal sessions.
    """

    def __init__(self, instructions: Optional[str] = None):
        self.instructions = instructions
        self.messages: List[BaseMessage] = []
        if instructions:
            self.messages.append(SystemMessage(content=instructions))

    @classmethod
    def restore(cls, history: Iterable[Message], instructions: Optional[str] = None) -> "ChatSession":
        """Replay every prior turn, in order, including tool call/result pairs"""

        session = cls(instructions)
        for message in history:
            session.add(message)
        return session

    def add(self, message: Message) -> None:
        self.messages.append(to_langchain_message(message))

    def __len__(self) -> int:
        return len(self.messages)

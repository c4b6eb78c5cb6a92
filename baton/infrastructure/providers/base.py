from typing import Dict, Any, List, Optional, Protocol, runtime_checkable

from langchain_core.messages import BaseMessage

from baton.domain.models.conversation import ProviderResponse


@runtime_checkable
class ChatProvider(Protocol):
    """A model backend

    Providers are stateless: every call receives the full restored chat,
    the model identifier and the tool schemas bound for this agent.
    """

    async def chat(
        self,
        messages: List[BaseMessage],
        model: str,
        tools: Optional[List[Dict[str, Any]]] = None
    ) -> ProviderResponse:
        ...

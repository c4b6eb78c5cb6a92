import uuid
from typing import Dict, Any, List, Optional, Callable, Union

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
import structlog

from baton.domain.models.conversation import ProviderResponse, ToolCall, Usage
from baton.exceptions import ProviderError

logger = structlog.get_logger(__name__)

ModelFactory = Callable[[str], BaseChatModel]


def to_openai_tool(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap a tool schema in OpenAI function-calling format"""
    return {
        "type": "function",
        "function": {
            "name": schema["name"],
            "description": schema.get("description", ""),
            "parameters": schema.get("parameters", {"type": "object", "properties": {}}),
        },
    }


def _text_content(content: Union[str, List[Any], None]) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content

    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class LangChainProvider:
    """Provider backed by a LangChain chat model

    Pass either a ready chat model, used for every call, or a factory that
    builds a chat model for a model identifier. Factory-built models are
    cached per identifier.
    """

    def __init__(
        self,
        chat_model: Optional[BaseChatModel] = None,
        model_factory: Optional[ModelFactory] = None
    ):
        if chat_model is None and model_factory is None:
            raise ValueError("LangChainProvider needs a chat_model or a model_factory")

        self.chat_model = chat_model
        self.model_factory = model_factory
        self._models: Dict[str, BaseChatModel] = {}

    def _model_for(self, model: str) -> BaseChatModel:
        if self.model_factory is None:
            return self.chat_model
        if model not in self._models:
            self._models[model] = self.model_factory(model)
        return self._models[model]

    async def chat(
        self,
        messages: List[BaseMessage],
        model: str,
        tools: Optional[List[Dict[str, Any]]] = None
    ) -> ProviderResponse:
        """Invoke the chat model and normalize its reply"""

        runnable = self._model_for(model)
        if tools:
            runnable = runnable.bind_tools([to_openai_tool(schema) for schema in tools])

        try:
            reply = await runnable.ainvoke(messages)
        except Exception as e:
            logger.error("Chat model call failed", model=model, error=str(e))
            raise ProviderError(f"Chat model call failed ({model}): {e}") from e

        if not isinstance(reply, AIMessage):
            raise ProviderError(f"Unexpected chat model reply: {type(reply).__name__}")

        return self.to_response(reply)

    @staticmethod
    def to_response(reply: AIMessage) -> ProviderResponse:
        tool_calls = [
            ToolCall(
                id=call.get("id") or f"call_{uuid.uuid4().hex[:12]}",
                name=call["name"],
                arguments=call.get("args") or {}
            )
            for call in reply.tool_calls or []
        ]

        usage = Usage()
        if reply.usage_metadata:
            usage = Usage(
                input_tokens=reply.usage_metadata.get("input_tokens", 0),
                output_tokens=reply.usage_metadata.get("output_tokens", 0),
                total_tokens=reply.usage_metadata.get("total_tokens", 0)
            )

        metadata = reply.response_metadata or {}
        return ProviderResponse(
            content=_text_content(reply.content),
            tool_calls=tool_calls,
            finish_reason=metadata.get("finish_reason") or metadata.get("stop_reason"),
            usage=usage
        )

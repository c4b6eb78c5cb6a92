from baton.config import BatonSettings, get_settings
from baton.infrastructure.observability.logging import configure_logging, setup_logging
from baton.domain.callbacks.callback_manager import CallbackManager
from baton.domain.context.memory.session_store import SessionStore
from baton.domain.context.run_context import AgentTransition, Context, HandoffResult
from baton.domain.models.conversation import Message, ProviderResponse, Role, ToolCall, Usage
from baton.domain.models.run_result import AgentResponse, RunResult
from baton.domain.orchestration.core.runner import Runner
from baton.domain.orchestration.subagent.agent import Agent, Handoff
from baton.domain.orchestration.subagent.agent_registry import AgentRegistry
from baton.domain.tool.tool import Tool, ToolParameter, function_to_tool, tool
from baton.exceptions import (
    AgentExecutionError,
    AgentNotFoundError,
    BatonError,
    CallbackError,
    HandoffLoopExceeded,
    MaxTurnsExceeded,
    ProviderError,
    ToolArgumentError,
    ToolError,
    ToolExecutionError,
)
from baton.infrastructure.providers.langchain_provider import LangChainProvider
from baton.infrastructure.providers.registry import ProviderRegistry

__all__ = [
    "Agent",
    "AgentExecutionError",
    "AgentNotFoundError",
    "AgentRegistry",
    "AgentResponse",
    "AgentTransition",
    "BatonError",
    "BatonSettings",
    "CallbackError",
    "CallbackManager",
    "Context",
    "Handoff",
    "HandoffLoopExceeded",
    "HandoffResult",
    "LangChainProvider",
    "MaxTurnsExceeded",
    "Message",
    "ProviderError",
    "ProviderRegistry",
    "ProviderResponse",
    "Role",
    "RunResult",
    "Runner",
    "SessionStore",
    "Tool",
    "ToolArgumentError",
    "ToolCall",
    "ToolError",
    "ToolExecutionError",
    "ToolParameter",
    "Usage",
    "configure_logging",
    "function_to_tool",
    "get_settings",
    "setup_logging",
    "tool",
]

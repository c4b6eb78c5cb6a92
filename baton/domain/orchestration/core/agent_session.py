from typing import Optional
import structlog

from baton.domain.callbacks.callback_manager import CallbackManager
from baton.domain.context.run_context import Context
from baton.domain.models.conversation import Message, ProviderResponse, Role, Usage
from baton.domain.models.run_result import AgentResponse
from baton.domain.orchestration.core.chat_session import ChatSession
from baton.domain.orchestration.subagent.agent import Agent
from baton.domain.tool.tool_executor import ToolExecutor
from baton.exceptions import MaxTurnsExceeded, ProviderError
from baton.infrastructure.providers.base import ChatProvider

logger = structlog.get_logger(__name__)


class AgentSession:
    """Drives one agent invocation against a run Context

    The session restores the shared conversation into a fresh chat for every
    model call, dispatches tool calls in the order the model emitted them and
    stops at the first successful handoff. Calls after that handoff in the
    same assistant message are answered with skipped results so every call
    keeps exactly one result.
    """

    def __init__(
        self,
        agent: Agent,
        provider: ChatProvider,
        context: Context,
        model: str,
        callbacks: Optional[CallbackManager] = None,
        executor: Optional[ToolExecutor] = None,
        max_turns: int = 10
    ):
        self.agent = agent
        self.provider = provider
        self.context = context
        self.model = model
        self.callbacks = callbacks or CallbackManager()
        self.executor = executor or ToolExecutor(self.callbacks)
        self.max_turns = max_turns

    async def run(self, input: Optional[str] = None) -> AgentResponse:
        """Run until the model answers directly or hands off

        ``input`` is appended as a user turn when given. A handoff target is
        invoked without one and continues from the transcript.
        """

        # A stale marker must not leak into this invocation
        self.context.clear_pending_handoff()

        if input is not None:
            self.context.append_messages([Message(role=Role.USER, content=input)])

        registry = self.agent.tool_registry()
        schemas = registry.get_schemas() or None
        usage = Usage()

        for turn in range(self.max_turns):
            instructions = self.agent.resolve_instructions(self.context)
            chat = ChatSession.restore(self.context.conversation_history, instructions)

            response = await self._call_model(chat, schemas)
            usage.add(response.usage)

            logger.debug(
                "Model responded",
                agent=self.agent.name,
                turn=turn + 1,
                tool_calls=len(response.tool_calls),
                finish_reason=response.finish_reason
            )

            if not response.has_tool_calls:
                content = response.content or ""
                self.context.append_messages([
                    Message(role=Role.ASSISTANT, content=content, agent_name=self.agent.name)
                ])
                return AgentResponse(content=content, usage=usage)

            self.context.append_messages([
                Message(
                    role=Role.ASSISTANT,
                    content=response.content,
                    tool_calls=response.tool_calls,
                    agent_name=self.agent.name
                )
            ])

            calls = response.tool_calls
            for index, call in enumerate(calls):
                outcome = await self.executor.execute(call, registry, self.context)
                self.context.append_messages([outcome.to_message()])

                if outcome.is_handoff:
                    target = outcome.handoff.target_name
                    for remaining in calls[index + 1:]:
                        skipped = self.executor.skipped(
                            remaining, f"Skipped: conversation transferred to {target}"
                        )
                        self.context.append_messages([skipped.to_message()])

                    return AgentResponse(
                        content=response.content,
                        handoff_result=outcome.handoff,
                        tool_calls=calls,
                        usage=usage
                    )

        raise MaxTurnsExceeded(self.agent.name, self.max_turns)

    async def _call_model(self, chat: ChatSession, schemas) -> ProviderResponse:
        try:
            return await self.provider.chat(chat.messages, model=self.model, tools=schemas)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"Provider call failed for agent '{self.agent.name}': {e}") from e

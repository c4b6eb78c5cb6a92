import time
import uuid
from typing import Any, Callable, Iterable, Optional, Union
import structlog

from baton.config import BatonSettings, get_settings
from baton.domain.callbacks.callback_manager import (
    AGENT_HANDOFF, AGENT_THINKING, TOOL_COMPLETE, TOOL_START, CallbackManager
)
from baton.domain.context.run_context import Context
from baton.domain.models.conversation import Usage
from baton.domain.models.run_result import RunResult
from baton.domain.orchestration.core.agent_session import AgentSession
from baton.domain.orchestration.subagent.agent import Agent
from baton.domain.orchestration.subagent.agent_registry import AgentRegistry
from baton.domain.tool.tool_executor import ToolExecutor
from baton.exceptions import HandoffLoopExceeded
from baton.infrastructure.observability.logging import AgentLogger, MetricsCollector, metrics as default_metrics
from baton.infrastructure.providers.registry import ProviderRegistry

logger = structlog.get_logger(__name__)


class Runner:
    """Entry point for multi-agent conversations

    A Runner holds only immutable agent definitions, providers and
    observers; all per-run state lives in the Context, so one Runner can
    serve many concurrent runs as long as each run has its own Context.
    ``process`` never raises: every failure is returned as a failed
    RunResult.
    """

    def __init__(
        self,
        agents: Union[AgentRegistry, Iterable[Agent]],
        providers: ProviderRegistry,
        callbacks: Optional[CallbackManager] = None,
        settings: Optional[BatonSettings] = None,
        max_handoffs: Optional[int] = None,
        max_turns: Optional[int] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.registry = agents if isinstance(agents, AgentRegistry) else AgentRegistry(agents)
        self.registry.validate_handoffs()

        self.providers = providers
        self.callbacks = callbacks or CallbackManager()
        self.settings = settings or get_settings()
        self.max_handoffs = self.settings.max_handoffs if max_handoffs is None else max_handoffs
        self.max_turns = self.settings.max_turns if max_turns is None else max_turns
        if self.max_handoffs < 0:
            raise ValueError("max_handoffs must be >= 0")
        if self.max_turns < 1:
            raise ValueError("max_turns must be >= 1")

        self.metrics = metrics or default_metrics
        self.executor = ToolExecutor(self.callbacks, self.metrics)
        self.agent_logger = AgentLogger(__name__)

    @classmethod
    def with_agents(cls, *agents: Agent, providers: ProviderRegistry, **kwargs: Any) -> "Runner":
        """Build a Runner whose first agent is the default entry point"""
        return cls(AgentRegistry(agents), providers, **kwargs)

    # Observer registration

    def on_agent_thinking(self, handler: Callable[[str, Any], Any]) -> "Runner":
        self.callbacks.register(AGENT_THINKING, handler)
        return self

    def on_tool_start(self, handler: Callable[[str, Any], Any]) -> "Runner":
        self.callbacks.register(TOOL_START, handler)
        return self

    def on_tool_complete(self, handler: Callable[[str, Any], Any]) -> "Runner":
        self.callbacks.register(TOOL_COMPLETE, handler)
        return self

    def on_agent_handoff(self, handler: Callable[[str, str, Optional[str]], Any]) -> "Runner":
        self.callbacks.register(AGENT_HANDOFF, handler)
        return self

    # Execution

    def select_agent(self, context: Context, starting_agent: Optional[Union[Agent, str]] = None) -> Agent:
        """Pick the agent for a new turn

        An explicit starting agent wins; otherwise the conversation continues
        with the agent that was active last, then the agent that authored the
        last assistant message, then the default agent.
        """

        if isinstance(starting_agent, Agent):
            return starting_agent
        if starting_agent:
            return self.registry.resolve(starting_agent)

        for identifier in (context.active_agent, context.last_agent_name()):
            agent = self.registry.get(identifier)
            if agent is not None:
                return agent

        return self.registry.default

    async def process(
        self,
        user_message: str,
        context: Optional[Context] = None,
        starting_agent: Optional[Union[Agent, str]] = None,
        session_id: Optional[str] = None
    ) -> RunResult:
        """Process one user message through the agent network"""

        context = context if context is not None else Context()
        run_id = uuid.uuid4().hex
        started = time.perf_counter()
        usage = Usage()
        agent: Optional[Agent] = None
        handoff_count = 0

        bound = {"run_id": run_id}
        if session_id:
            bound["session_id"] = session_id

        with structlog.contextvars.bound_contextvars(**bound):
            try:
                agent = self.select_agent(context, starting_agent)
                logger.info("Run started", agent=agent.name)

                next_input: Optional[str] = user_message
                while True:
                    self.callbacks.emit_agent_thinking(agent.name, user_message)
                    self.agent_logger.log_agent_event("invoke", agent.name, {"handoffs": handoff_count})

                    session = AgentSession(
                        agent=agent,
                        provider=self.providers.get(agent.provider or self.settings.default_provider),
                        context=context,
                        model=agent.model or self.settings.default_model,
                        callbacks=self.callbacks,
                        executor=self.executor,
                        max_turns=self.max_turns
                    )
                    response = await session.run(next_input)
                    usage.add(response.usage)

                    handoff = context.consume_pending_handoff() or response.handoff_result
                    if handoff is None or not handoff.is_handoff:
                        context.active_agent = agent.handle
                        break

                    if handoff_count >= self.max_handoffs:
                        raise HandoffLoopExceeded(self.max_handoffs)

                    target = self.registry.resolve(handoff.target)
                    handoff_count += 1

                    self.callbacks.emit_agent_handoff(agent.name, target.name, handoff.reason)
                    context.record_transition(agent.name, target.name, handoff.reason)
                    self.agent_logger.log_handoff(agent.name, target.name, handoff.reason, handoff_count)
                    self.metrics.increment_counter("handoffs", tags={"from": agent.name, "to": target.name})

                    agent = target
                    context.active_agent = target.handle
                    next_input = None

                result = RunResult(
                    input=user_message,
                    output=response.content or "",
                    messages=list(context.conversation_history),
                    usage=usage,
                    last_agent=agent.name,
                    context=context,
                    metadata={"run_id": run_id, "handoffs": handoff_count}
                )
            except Exception as e:
                logger.error(
                    "Run failed",
                    agent=agent.name if agent else None,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True
                )
                result = RunResult.failed(
                    e,
                    input=user_message,
                    messages=list(context.conversation_history),
                    usage=usage,
                    last_agent=agent.name if agent else None,
                    context=context,
                    metadata={"run_id": run_id, "handoffs": handoff_count}
                )

            result.duration = round(time.perf_counter() - started, 4)
            self.metrics.record_latency("run", result.duration * 1000)
            self.metrics.increment_counter("runs.success" if result.success else "runs.failure")
            logger.info(
                "Run finished",
                success=result.success,
                last_agent=result.last_agent,
                handoffs=handoff_count,
                duration=result.duration
            )
            return result

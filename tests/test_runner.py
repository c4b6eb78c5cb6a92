"""Tests for the Runner and multi-agent handoffs."""

import json

import pytest

from baton.domain.context.run_context import Context
from baton.domain.models.conversation import Message, Role, validate_pairing
from baton.domain.orchestration.core.runner import Runner
from baton.domain.orchestration.subagent.agent import Agent
from baton.domain.tool.tool import tool
from baton.exceptions import AgentNotFoundError, ToolError
from baton.infrastructure.providers.registry import ProviderRegistry

from conftest import ScriptedProvider, call, calls, reply


@tool
def lookup_invoice(invoice_id: str, context) -> dict:
    """Look up an invoice."""
    return {"invoice_id": invoice_id, "owner": context.get("user_id")}


def _support_agents():
    billing = Agent(
        name="Billing",
        handle="BillingAgent",
        instructions="You handle billing questions.",
        provider="billing",
        tools=[lookup_invoice],
        handoffs=["Triage"],
    )
    triage = Agent(
        name="Triage",
        instructions="Route the user to the right specialist.",
        provider="triage",
        handoffs=[billing],
    )
    return triage, billing


def _providers(**providers):
    return ProviderRegistry(providers)


@pytest.mark.asyncio
async def test_direct_answer(settings, metrics):
    """Test a single agent answering without tools."""
    providers = _providers(mock=ScriptedProvider(reply("Hi there!", input_tokens=3, output_tokens=4)))
    runner = Runner([Agent(name="Greeter")], providers, settings=settings, metrics=metrics)

    result = await runner.process("Hello")

    assert result.success
    assert result.output == "Hi there!"
    assert result.last_agent == "Greeter"
    assert result.usage.total_tokens == 7
    assert result.context.active_agent == "Greeter"
    assert result.duration is not None
    assert metrics.metrics["runs.success"] == 1


@pytest.mark.asyncio
async def test_triage_hands_off_to_billing(settings, metrics):
    """Test the triage agent transfers and billing answers with the shared transcript."""
    triage, billing = _support_agents()
    triage_provider = ScriptedProvider(
        calls(call("transfer_to_billing_agent", {"reason": "invoice question"}, call_id="h1"))
    )
    billing_provider = ScriptedProvider(
        calls(call("lookup_invoice", {"invoice_id": "INV-1"}, call_id="c1")),
        reply("Invoice INV-1 belongs to you."),
    )
    runner = Runner(
        [triage], _providers(triage=triage_provider, billing=billing_provider),
        settings=settings, metrics=metrics
    )

    events = []
    runner.on_agent_thinking(lambda name, text: events.append(("thinking", name)))
    runner.on_agent_handoff(lambda src, dst, reason: events.append(("handoff", src, dst, reason)))
    runner.on_tool_start(lambda name, args: events.append(("tool_start", name)))
    runner.on_tool_complete(lambda name, result: events.append(("tool_complete", name)))

    context = Context(data={"user_id": "u-1"})
    result = await runner.process("Why was I charged twice?", context=context)

    assert result.success
    assert result.output == "Invoice INV-1 belongs to you."
    assert result.last_agent == "Billing"
    assert events == [
        ("thinking", "Triage"),
        ("tool_start", "transfer_to_billing_agent"),
        ("tool_complete", "transfer_to_billing_agent"),
        ("handoff", "Triage", "Billing", "invoice question"),
        ("thinking", "Billing"),
        ("tool_start", "lookup_invoice"),
        ("tool_complete", "lookup_invoice"),
    ]

    transitions = context.transitions
    assert [(t.from_agent, t.to_agent, t.reason) for t in transitions] == [
        ("Triage", "Billing", "invoice question")
    ]
    assert context.active_agent == "BillingAgent"
    assert context.pending_handoff is None

    # Billing saw the triage transcript, ending with the handoff acknowledgement
    billing_first = billing_provider.requests[0]["messages"]
    assert billing_first[0].content == "You handle billing questions."
    assert billing_first[1].content == "Why was I charged twice?"
    assert json.loads(billing_first[-1].content)["type"] == "handoff"

    # Tools received the shared state bag
    tool_result = [m for m in context.conversation_history if m.tool_call_id == "c1"][0]
    assert json.loads(tool_result.content)["owner"] == "u-1"

    validate_pairing(result.messages)
    assert metrics.metrics["handoffs"] == 1
    assert metrics.get("handoffs", {"from": "Triage", "to": "Billing"}) == 1


@pytest.mark.asyncio
async def test_follow_up_continues_with_active_agent(settings):
    """Test the next turn starts with the agent that answered last."""
    triage, billing = _support_agents()
    triage_provider = ScriptedProvider(calls(call("transfer_to_billing_agent", {})))
    billing_provider = ScriptedProvider(reply("Refund issued."), reply("You're welcome."))
    runner = Runner([triage], _providers(triage=triage_provider, billing=billing_provider), settings=settings)

    context = Context()
    await runner.process("Refund please", context=context)
    result = await runner.process("Thanks!", context=context)

    assert result.output == "You're welcome."
    assert result.last_agent == "Billing"
    assert triage_provider.call_count == 1
    assert billing_provider.call_count == 2


@pytest.mark.asyncio
async def test_attribution_selects_agent_when_active_agent_missing(settings):
    """Test restored conversations resume with the last attributed agent."""
    triage, billing = _support_agents()
    billing_provider = ScriptedProvider(reply("Still here."))
    runner = Runner(
        [triage], _providers(triage=ScriptedProvider(), billing=billing_provider), settings=settings
    )

    context = Context()
    context.append_messages([
        Message(role="user", content="Refund please"),
        Message(role="assistant", content="Done.", agent_name="Billing"),
    ])

    result = await runner.process("Are you there?", context=context)

    assert result.success
    assert result.last_agent == "Billing"


@pytest.mark.asyncio
async def test_handoff_loop_is_bounded(settings, metrics):
    """Test agents that keep handing off stop at the configured bound."""
    ping = Agent(name="Ping", provider="ping", handoffs=["Pong"])
    pong = Agent(name="Pong", provider="pong", handoffs=["Ping"])
    ping_provider = ScriptedProvider(lambda m: calls(call("transfer_to_pong", {})), repeat_last=True)
    pong_provider = ScriptedProvider(lambda m: calls(call("transfer_to_ping", {})), repeat_last=True)
    runner = Runner(
        [ping, pong], _providers(ping=ping_provider, pong=pong_provider),
        settings=settings, max_handoffs=3, metrics=metrics
    )

    context = Context()
    result = await runner.process("go", context=context)

    assert not result.success
    assert result.error_type == "HandoffLoopExceeded"
    assert result.error == "Maximum handoffs (3) exceeded"
    assert len(context.transitions) == 3
    assert ping_provider.call_count + pong_provider.call_count == 4
    assert context.pending_handoff is None
    validate_pairing(result.messages)
    assert metrics.metrics["runs.failure"] == 1


@pytest.mark.asyncio
async def test_zero_handoffs_allowed(settings):
    """Test max_handoffs=0 fails on the first handoff attempt."""
    triage, billing = _support_agents()
    runner = Runner(
        [triage],
        _providers(triage=ScriptedProvider(calls(call("transfer_to_billing_agent", {}))), billing=ScriptedProvider()),
        settings=settings,
        max_handoffs=0
    )

    result = await runner.process("Refund please")

    assert result.error_type == "HandoffLoopExceeded"
    assert result.context.transitions == []


@pytest.mark.asyncio
async def test_provider_error_becomes_failed_result(settings):
    """Test provider failures never escape process."""
    runner = Runner(
        [Agent(name="Greeter")], _providers(mock=ScriptedProvider(TimeoutError("upstream timeout"))), settings=settings
    )

    result = await runner.process("Hello")

    assert result.failure
    assert result.error_type == "ProviderError"
    assert "upstream timeout" in result.error
    assert result.content == result.error
    assert result.to_dict()["success"] is False


@pytest.mark.asyncio
async def test_unknown_provider_becomes_failed_result(settings):
    """Test an agent bound to an unregistered provider fails cleanly."""
    runner = Runner([Agent(name="Greeter", provider="anthropic")], _providers(), settings=settings)

    result = await runner.process("Hello")

    assert result.error_type == "ProviderError"
    assert "Unknown provider: anthropic" in result.error


@pytest.mark.asyncio
async def test_raising_observer_does_not_break_run(settings):
    """Test a failing callback is isolated from the run."""
    runner = Runner([Agent(name="Greeter")], _providers(mock=ScriptedProvider(reply("Hi"))), settings=settings)

    def broken(*args):
        raise RuntimeError("observer bug")

    runner.on_agent_thinking(broken)

    result = await runner.process("Hello")

    assert result.success
    assert result.output == "Hi"


@pytest.mark.asyncio
async def test_starting_agent_override(settings):
    """Test an explicit starting agent wins over the default."""
    triage, billing = _support_agents()
    billing_provider = ScriptedProvider(reply("Billing here."))
    runner = Runner([triage], _providers(triage=ScriptedProvider(), billing=billing_provider), settings=settings)

    result = await runner.process("Invoice?", starting_agent="BillingAgent")

    assert result.last_agent == "Billing"
    assert billing_provider.call_count == 1


def test_runner_rejects_unknown_handoff_targets(settings):
    """Test handoff targets are validated when the Runner is built."""
    with pytest.raises(ValueError, match="unknown handoff target"):
        Runner([Agent(name="Triage", handoffs=["Ghost"])], _providers(), settings=settings)


@pytest.mark.asyncio
async def test_unknown_starting_agent_fails(settings):
    """Test an unresolvable starting agent becomes a failed result."""
    runner = Runner([Agent(name="Greeter")], _providers(), settings=settings)

    result = await runner.process("Hello", starting_agent="Nobody")

    assert result.error_type == AgentNotFoundError.__name__


def test_with_agents_uses_first_agent_as_default(settings):
    """Test with_agents keeps registration order."""
    first, second = Agent(name="First"), Agent(name="Second")

    runner = Runner.with_agents(first, second, providers=_providers(), settings=settings)

    assert runner.registry.default is first
    assert runner.select_agent(Context()) is first


@pytest.mark.asyncio
async def test_history_roles_after_handoff(settings):
    """Test the recorded transcript keeps assistant, tool and final answer turns."""
    triage, billing = _support_agents()
    runner = Runner(
        [triage],
        _providers(triage=ScriptedProvider(calls(call("transfer_to_billing_agent", {}))), billing=ScriptedProvider(reply("Done"))),
        settings=settings
    )

    result = await runner.process("Refund")

    assert [m.role for m in result.messages] == [Role.USER, Role.ASSISTANT, Role.TOOL, Role.ASSISTANT]
    assert result.messages[1].agent_name == "Triage"
    assert result.messages[3].agent_name == "Billing"


@pytest.mark.asyncio
async def test_tool_error_does_not_fail_run(settings, metrics):
    """Test a tool raising ToolError yields a paired error turn and the run continues."""

    @tool
    def find_record(key: str) -> str:
        """Find a stored record."""
        raise ToolError(f"no record for {key}")

    provider = ScriptedProvider(
        calls(call("find_record", {"key": "a"}, call_id="f1")),
        reply("Sorry, nothing found."),
    )
    runner = Runner([Agent(name="Archivist", tools=[find_record])], _providers(mock=provider), settings=settings, metrics=metrics)

    result = await runner.process("find a")

    assert result.success
    assert result.output == "Sorry, nothing found."
    assert provider.call_count == 2
    tool_turns = [m for m in result.messages if m.role == Role.TOOL]
    assert len(tool_turns) == 1
    assert tool_turns[0].is_error
    assert tool_turns[0].tool_call_id == "f1"
    assert "no record for a" in tool_turns[0].content
    validate_pairing(result.messages)
    assert metrics.metrics["tool.failures"] == 1
    assert metrics.get("tool.failures", {"tool": "find_record"}) == 1

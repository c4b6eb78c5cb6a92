"""Tests for handoff tool generation and invocation."""

import json

import pytest

from baton.domain.context.run_context import Context
from baton.domain.orchestration.handoff.handoff_tool import (
    HandoffTool, build_handoff_tools, generate_handoff_tool_name
)


@pytest.mark.parametrize(
    "identifier, expected",
    [
        ("BillingAgent", "transfer_to_billing_agent"),
        ("Billing", "transfer_to_billing"),
        ("HTTPSupport", "transfer_to_http_support"),
        ("support::BillingAgent", "transfer_to_billing_agent"),
        ("support.billing.RefundAgent", "transfer_to_refund_agent"),
        ("Tech Support", "transfer_to_tech_support"),
    ],
)
def test_generate_handoff_tool_name(identifier, expected):
    """Test tool names are snake-cased and qualifiers stripped."""
    assert generate_handoff_tool_name(identifier) == expected


def test_generate_handoff_tool_name_qualified():
    """Test qualified names keep every segment."""
    assert generate_handoff_tool_name("support.BillingAgent", qualified=True) == "transfer_to_support_billing_agent"


def test_generate_handoff_tool_name_rejects_empty():
    """Test identifiers that produce no name are rejected."""
    with pytest.raises(ValueError):
        generate_handoff_tool_name("  ")
    with pytest.raises(ValueError):
        generate_handoff_tool_name("::")


def test_build_handoff_tools_dedupes_and_describes():
    """Test duplicate targets collapse and default descriptions apply."""
    tools = build_handoff_tools([
        ("BillingAgent", "Billing", None),
        ("BillingAgent", "Billing", None),
        ("TechAgent", "Tech Support", "Escalate technical problems"),
    ])

    assert [t.name for t in tools] == ["transfer_to_billing_agent", "transfer_to_tech_agent"]
    assert tools[0].description == "Transfer to Billing"
    assert tools[1].description == "Escalate technical problems"
    assert all(isinstance(t, HandoffTool) and t.is_handoff for t in tools)
    assert tools[0].to_schema()["parameters"]["required"] == []


def test_build_handoff_tools_resolves_collisions():
    """Test colliding short names fall back to qualified names."""
    tools = build_handoff_tools([
        ("sales.Agent", "Sales", None),
        ("support.Agent", "Support", None),
    ])

    assert sorted(t.name for t in tools) == ["transfer_to_sales_agent", "transfer_to_support_agent"]


def test_build_handoff_tools_rejects_unresolvable_collisions():
    """Test names that still collide after qualification raise."""
    with pytest.raises(ValueError, match="duplicate tool names"):
        build_handoff_tools([("BillingAgent", "A", None), ("billing_agent", "B", None)])


@pytest.mark.asyncio
async def test_handoff_tool_sets_pending_handoff():
    """Test invoking a handoff tool marks the Context and acknowledges."""
    tool = build_handoff_tools([("BillingAgent", "Billing", None)])[0]
    context = Context()

    ack = await tool.invoke(json.dumps({"reason": "invoice question"}), context)

    assert ack == {
        "type": "handoff",
        "target": "Billing",
        "target_class": "BillingAgent",
        "reason": "invoice question",
        "message": "Transferring to Billing (invoice question)...",
    }
    pending = context.pending_handoff
    assert pending.target == "BillingAgent"
    assert pending.target_name == "Billing"
    assert pending.reason == "invoice question"


@pytest.mark.asyncio
async def test_handoff_tool_without_reason():
    """Test the reason argument is optional."""
    tool = build_handoff_tools([("Billing", "Billing", None)])[0]
    context = Context()

    ack = await tool.invoke({}, context)

    assert ack["message"] == "Transferring to Billing..."
    assert context.pending_handoff.reason is None

"""Handoff tools: generated per declared target, they signal a transfer of control.

Invoking a handoff tool does no domain work. It writes a pending-handoff
marker into the run Context and returns an acknowledgement that is recorded
as the tool result, so the transcript stays coherent while the Runner
performs the actual switch.
"""

import re
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import Field

from baton.domain.context.run_context import Context, HandoffResult
from baton.domain.tool.tool import Tool, ToolParameter

HANDOFF_TOOL_PREFIX = "transfer_to_"

_QUALIFIER = re.compile(r"::|\.|/")


def _snake_case(text: str) -> str:
    text = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", text)
    text = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", text)
    text = re.sub(r"[^0-9A-Za-z]+", "_", text)
    return text.strip("_").lower()


def _segments(identifier: str) -> List[str]:
    return [segment for segment in _QUALIFIER.split(identifier) if segment]


def generate_handoff_tool_name(identifier: str, qualified: bool = False) -> str:
    """Tool name for a handoff target.

    Qualifying prefixes (``support.billing.BillingAgent``,
    ``support::BillingAgent``) are stripped unless ``qualified`` is set, in
    which case every segment is kept.

    Examples:
        >>> generate_handoff_tool_name("BillingAgent")
        'transfer_to_billing_agent'
        >>> generate_handoff_tool_name("support.BillingAgent", qualified=True)
        'transfer_to_support_billing_agent'
    """
    segments = _segments(identifier.strip())
    if not segments:
        raise ValueError(f"Invalid handoff target identifier: {identifier!r}")

    base = _snake_case("_".join(segments) if qualified else segments[-1])
    if not base:
        raise ValueError(f"Handoff target identifier {identifier!r} yields an empty tool name")
    return f"{HANDOFF_TOOL_PREFIX}{base}"


class HandoffTool(Tool):
    """Tool that transfers the conversation to another agent"""

    target: str = Field(description="Registry identifier of the target agent")
    target_name: str = Field(description="Display name of the target agent")

    @property
    def is_handoff(self) -> bool:
        return True

    async def perform(self, params: Dict[str, Any], context: Any) -> Dict[str, Any]:
        reason: Optional[str] = params.get("reason") or None

        if isinstance(context, Context):
            context.set_pending_handoff(
                HandoffResult(target=self.target, target_name=self.target_name, reason=reason)
            )

        reason_text = f" ({reason})" if reason else ""
        return {
            "type": "handoff",
            "target": self.target_name,
            "target_class": self.target,
            "reason": reason,
            "message": f"Transferring to {self.target_name}{reason_text}...",
        }


def _reason_parameter() -> ToolParameter:
    return ToolParameter(
        name="reason",
        type="string",
        description="Reason for the transfer (optional)",
        required=False,
    )


def build_handoff_tools(targets: Iterable[Tuple[str, str, Optional[str]]]) -> List[HandoffTool]:
    """Materialize one HandoffTool per distinct target.

    ``targets`` yields ``(identifier, display_name, description)`` tuples.
    Names stay injective: targets whose stripped names collide fall back to
    their fully qualified names, and a collision that survives that raises
    ValueError.
    """
    unique: Dict[str, Tuple[str, Optional[str]]] = {}
    for identifier, display_name, description in targets:
        if identifier not in unique:
            unique[identifier] = (display_name, description)

    short_names = {identifier: generate_handoff_tool_name(identifier) for identifier in unique}
    counts = Counter(short_names.values())

    names: Dict[str, str] = {}
    for identifier, short_name in short_names.items():
        if counts[short_name] > 1:
            names[identifier] = generate_handoff_tool_name(identifier, qualified=True)
        else:
            names[identifier] = short_name

    duplicates = [name for name, count in Counter(names.values()).items() if count > 1]
    if duplicates:
        raise ValueError(f"Handoff targets produce duplicate tool names: {', '.join(sorted(duplicates))}")

    tools = []
    for identifier, (display_name, description) in unique.items():
        tools.append(
            HandoffTool(
                name=names[identifier],
                description=description or f"Transfer to {display_name}",
                parameters=[_reason_parameter()],
                target=identifier,
                target_name=display_name,
            )
        )
    return tools

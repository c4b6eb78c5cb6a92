"""Shared test fixtures."""

import itertools
from typing import Any, Dict, List, Optional

import pytest

from baton.config import BatonSettings
from baton.domain.models.conversation import ProviderResponse, ToolCall, Usage
from baton.infrastructure.observability.logging import MetricsCollector

_call_ids = itertools.count(1)


def reply(text: str, input_tokens: int = 0, output_tokens: int = 0) -> ProviderResponse:
    """A direct answer with no tool calls."""
    return ProviderResponse(
        content=text,
        finish_reason="stop",
        usage=Usage(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens
        )
    )


def calls(*tool_calls: ToolCall, content: Optional[str] = None) -> ProviderResponse:
    """An assistant turn requesting the given tool calls."""
    return ProviderResponse(content=content, tool_calls=list(tool_calls), finish_reason="tool_calls")


def call(name: str, arguments: Optional[Dict[str, Any]] = None, call_id: Optional[str] = None) -> ToolCall:
    return ToolCall(id=call_id or f"call_{next(_call_ids)}", name=name, arguments=arguments or {})


class ScriptedProvider:
    """Replays canned responses and records every request."""

    def __init__(self, *responses: Any, repeat_last: bool = False):
        self._responses = list(responses)
        self._repeat_last = repeat_last
        self.requests: List[Dict[str, Any]] = []

    async def chat(self, messages, model, tools=None):
        self.requests.append({"messages": list(messages), "model": model, "tools": tools})
        if not self._responses:
            raise RuntimeError("script exhausted")

        response = self._responses[0] if self._repeat_last and len(self._responses) == 1 else self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(messages)
        return response

    @property
    def call_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def settings():
    return BatonSettings(default_provider="mock", default_model="mock-model", max_handoffs=5, max_turns=10)


@pytest.fixture
def metrics():
    return MetricsCollector()

from typing import Dict, Any, List, Optional, Tuple, Union, Callable
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from baton.domain.context.run_context import Context
from baton.domain.orchestration.handoff.handoff_tool import HandoffTool, build_handoff_tools
from baton.domain.tool.tool import Tool
from baton.domain.tool.tool_registry import ToolRegistry

DEFAULT_INSTRUCTIONS = "You are a helpful AI assistant."

Instructions = Union[str, Callable[[Context], str]]


class Handoff(BaseModel):
    """Declared handoff target"""
    target: str = Field(description="Registry identifier (handle) of the target agent")
    name: Optional[str] = Field(None, description="Display name used in the tool description")
    description: Optional[str] = Field(None, description="Overrides 'Transfer to <name>'")

    @property
    def display_name(self) -> str:
        return self.name or self.target


class Agent(BaseModel):
    """Immutable agent definition

    Definitions are shared across runs; per-run conversation state lives in
    the Context and is driven by an AgentSession. Handoff targets are declared
    by handle (string), by Handoff entry or by Agent object, and resolved
    through the Runner's registry, so cycles (A -> B -> A) are legal.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(description="Display name")
    handle: Optional[str] = Field(None, description="Stable registry identifier, defaults to name")
    description: str = ""
    instructions: Instructions = DEFAULT_INSTRUCTIONS
    model: Optional[str] = None
    provider: Optional[str] = None
    tools: Tuple[Tool, ...] = ()
    handoffs: Tuple[Any, ...] = ()

    _handoffs: Tuple[Handoff, ...] = PrivateAttr(default=())
    _handoff_agents: Tuple["Agent", ...] = PrivateAttr(default=())
    _handoff_tools: Tuple[HandoffTool, ...] = PrivateAttr(default=())

    @model_validator(mode="before")
    @classmethod
    def _default_handle(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("handle") and data.get("name"):
            data = dict(data)
            data["handle"] = data["name"]
        return data

    def model_post_init(self, __context: Any) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Agent name must not be empty")

        handoffs: List[Handoff] = []
        handoff_agents: List[Agent] = []
        for entry in self.handoffs:
            if isinstance(entry, Agent):
                handoffs.append(Handoff(target=entry.handle, name=entry.name))
                handoff_agents.append(entry)
            elif isinstance(entry, Handoff):
                handoffs.append(entry)
            elif isinstance(entry, str) and entry.strip():
                handoffs.append(Handoff(target=entry.strip()))
            else:
                raise ValueError(f"Invalid handoff target for agent '{self.name}': {entry!r}")

        handoff_tools = build_handoff_tools(
            (h.target, h.display_name, h.description) for h in handoffs
        )

        # Tool names must be unique across user and handoff tools
        ToolRegistry(list(self.tools) + handoff_tools)

        self._handoffs = tuple(handoffs)
        self._handoff_agents = tuple(handoff_agents)
        self._handoff_tools = tuple(handoff_tools)

    @property
    def handoff_targets(self) -> List[Handoff]:
        return list(self._handoffs)

    @property
    def handoff_agents(self) -> List["Agent"]:
        """Targets declared as Agent objects"""
        return list(self._handoff_agents)

    @property
    def handoff_tools(self) -> List[HandoffTool]:
        return list(self._handoff_tools)

    def bound_tools(self) -> List[Tool]:
        """User tools followed by generated handoff tools"""
        return list(self.tools) + list(self._handoff_tools)

    def tool_registry(self) -> ToolRegistry:
        return ToolRegistry(self.bound_tools())

    def resolve_instructions(self, context: Context) -> str:
        """Evaluate instructions against the current context"""
        instructions = self.instructions
        if callable(instructions):
            instructions = instructions(context)
        return "" if instructions is None else str(instructions)

    def get_info(self) -> Dict[str, Any]:
        """Get agent information"""
        return {
            "name": self.name,
            "handle": self.handle,
            "description": self.description,
            "instructions": self.instructions if isinstance(self.instructions, str) else "<dynamic>",
            "provider": self.provider,
            "model": self.model,
            "tools": [tool.name for tool in self.tools],
            "handoffs": [h.target for h in self._handoffs],
        }

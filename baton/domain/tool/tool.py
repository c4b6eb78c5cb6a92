"""Tool definitions and the decorator that builds them from plain functions."""

import inspect
import types
from typing import Any, Callable, Dict, List, Literal, Optional, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel, ConfigDict, Field

from baton.domain.tool.tool_validator import ToolParameterValidator
from baton.exceptions import ToolArgumentError, ToolExecutionError

ParameterType = Literal["string", "integer", "number", "boolean", "array", "object"]

CONTEXT_PARAMETER = "context"

_SIMPLE_TYPE_MAP = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
}


class ToolParameter(BaseModel):
    """Declared tool parameter"""
    name: str
    type: ParameterType = "string"
    description: Optional[str] = None
    required: bool = True
    default: Any = None
    items_type: Optional[ParameterType] = Field(None, description="Element type for array parameters")

    def to_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        if self.type == "array" and self.items_type:
            schema["items"] = {"type": self.items_type}
        return schema


class Tool(BaseModel):
    """A callable exposed to the model

    ``func`` receives the declared parameters as keyword arguments, plus the
    run Context as ``context`` when its signature accepts it.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    description: str = ""
    parameters: List[ToolParameter] = Field(default_factory=list)
    func: Optional[Callable[..., Any]] = None

    @property
    def is_handoff(self) -> bool:
        return False

    def parameters_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {p.name: p.to_schema() for p in self.parameters},
            "required": [p.name for p in self.parameters if p.required],
        }

    def to_schema(self) -> Dict[str, Any]:
        """Provider-facing description: name, description and JSON schema"""
        return {
            "name": self.name,
            "description": self.description or self.name,
            "parameters": self.parameters_schema(),
        }

    async def invoke(self, arguments: Optional[Dict[str, Any]], context: Any) -> Any:
        """Validate arguments, inject context and run the tool

        Raises ToolArgumentError for bad arguments and ToolExecutionError when
        the tool body raises. The result is returned verbatim.
        """
        params = ToolParameterValidator.validate_tool_call(self, arguments)
        return await self.perform(params, context)

    async def perform(self, params: Dict[str, Any], context: Any) -> Any:
        if self.func is None:
            raise ToolExecutionError(f"Tool '{self.name}' has no implementation", tool_name=self.name)

        kwargs = dict(params)
        if _accepts_context(self.func):
            kwargs[CONTEXT_PARAMETER] = context

        try:
            result = self.func(**kwargs)
            if inspect.isawaitable(result):
                result = await result
        except (ToolArgumentError, ToolExecutionError):
            raise
        except Exception as e:
            raise ToolExecutionError(
                f"Tool '{self.name}' failed: {e}", tool_name=self.name, original=e
            ) from e

        return result


def _accepts_context(fn: Callable[..., Any]) -> bool:
    try:
        parameters = inspect.signature(fn).parameters
    except (TypeError, ValueError):
        return False
    return CONTEXT_PARAMETER in parameters


def _json_type(annotation: Any) -> Dict[str, Any]:
    """Convert a Python annotation into a parameter type and optional item type."""
    if annotation is inspect.Parameter.empty:
        return {"type": "string"}

    origin = get_origin(annotation)
    args = get_args(annotation)

    # Optional[T]
    if origin is Union or origin is getattr(types, "UnionType", None):
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) == 1:
            return _json_type(non_none[0])
        return {"type": "string"}

    if origin is list or annotation is list:
        result: Dict[str, Any] = {"type": "array"}
        if args:
            result["items_type"] = _json_type(args[0])["type"]
        return result

    if origin is dict or annotation is dict:
        return {"type": "object"}

    return {"type": _SIMPLE_TYPE_MAP.get(annotation, "string")}


def _parse_google_docstring(doc: str) -> Dict[str, str]:
    """Parse Google-style docstring to extract parameter descriptions."""
    if not doc:
        return {}

    param_descriptions: Dict[str, str] = {}
    in_args_section = False
    current_param = None

    for line in doc.split("\n"):
        stripped = line.strip()

        if stripped in ("Args:", "Arguments:", "Parameters:"):
            in_args_section = True
            continue
        if in_args_section and stripped and stripped.endswith(":") and not line.startswith(" "):
            break

        if in_args_section and stripped:
            if ":" in stripped:
                param_part, desc_part = stripped.split(":", 1)
                param_name = param_part.split("(")[0].strip()
                if param_name:
                    current_param = param_name
                    param_descriptions[param_name] = desc_part.strip()
            elif current_param:
                param_descriptions[current_param] += " " + stripped

    return param_descriptions


def _summary(doc: str) -> str:
    lines = []
    for line in doc.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.endswith(":"):
            break
        lines.append(stripped)
    return " ".join(lines)


def function_to_tool(
    fn: Callable[..., Any],
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Tool:
    """Build a Tool from a function signature and its docstring"""
    doc = inspect.getdoc(fn) or ""
    param_descriptions = _parse_google_docstring(doc)

    try:
        hints = get_type_hints(fn)
    except Exception:
        hints = {}

    parameters = []
    for param_name, param in inspect.signature(fn).parameters.items():
        if param_name in ("self", CONTEXT_PARAMETER):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        has_default = param.default is not inspect.Parameter.empty
        parameters.append(
            ToolParameter(
                name=param_name,
                description=param_descriptions.get(param_name),
                required=not has_default,
                default=param.default if has_default else None,
                **_json_type(hints.get(param_name, param.annotation)),
            )
        )

    return Tool(
        name=name or getattr(fn, "__name__", "tool"),
        description=description or _summary(doc) or getattr(fn, "__name__", ""),
        parameters=parameters,
        func=fn,
    )


def tool(
    _fn: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Any:
    """Decorator turning a function into a Tool.

    Example:
        >>> @tool(description="Look up an invoice")
        ... def lookup_invoice(invoice_id: str, context) -> dict:
        ...     return context.get("invoices", {}).get(invoice_id)
    """

    def wrapper(fn: Callable[..., Any]) -> Tool:
        return function_to_tool(fn, name=name, description=description)

    if _fn is None:
        return wrapper

    return wrapper(_fn)

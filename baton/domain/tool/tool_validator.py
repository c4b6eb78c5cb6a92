# Parameter validation and coercion for model-supplied tool arguments
import json
from typing import Dict, Any, Optional

import jsonschema
import structlog

from baton.exceptions import ToolArgumentError

logger = structlog.get_logger(__name__)

_TRUE_STRINGS = {"true", "yes", "1", "y", "on"}
_FALSE_STRINGS = {"false", "no", "0", "n", "off"}


class ToolParameterValidator:
    @staticmethod
    def validate_tool_call(tool, arguments: Optional[Any]) -> Dict[str, Any]:
        """Check and coerce raw arguments against the tool's declared parameters"""

        raw = ToolParameterValidator._as_mapping(tool.name, arguments)
        declared = {param.name: param for param in tool.parameters}

        unknown = sorted(set(raw) - set(declared))
        if unknown:
            logger.warning("Dropping undeclared tool arguments", tool=tool.name, arguments=unknown)

        missing = [
            param.name for param in tool.parameters
            if param.required and raw.get(param.name) is None
        ]
        if missing:
            raise ToolArgumentError(
                f"Missing required parameter(s) for '{tool.name}': {', '.join(missing)}",
                tool_name=tool.name,
                arguments=raw
            )

        params: Dict[str, Any] = {}
        for name, param in declared.items():
            value = raw.get(name)
            if value is None:
                if param.default is not None:
                    params[name] = param.default
                continue
            params[name] = ToolParameterValidator._coerce(tool.name, name, param.type, value)

        try:
            # JSON Schema validation
            jsonschema.validate(params, tool.parameters_schema())
        except jsonschema.ValidationError as e:
            raise ToolArgumentError(
                f"Schema validation failed for '{tool.name}': {e.message}",
                tool_name=tool.name,
                arguments=raw
            ) from e

        return params

    @staticmethod
    def _as_mapping(tool_name: str, arguments: Optional[Any]) -> Dict[str, Any]:
        if arguments is None or arguments == "":
            return {}
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments)
            except ValueError as e:
                raise ToolArgumentError(
                    f"Arguments for '{tool_name}' are not valid JSON: {e}", tool_name=tool_name
                ) from e
        if not isinstance(arguments, dict):
            raise ToolArgumentError(
                f"Arguments for '{tool_name}' must be an object, got {type(arguments).__name__}",
                tool_name=tool_name
            )
        return {str(key): value for key, value in arguments.items()}

    @staticmethod
    def _coerce(tool_name: str, name: str, expected: str, value: Any) -> Any:
        try:
            if expected == "string":
                if isinstance(value, (dict, list)):
                    return json.dumps(value)
                return value if isinstance(value, str) else str(value)

            if expected == "integer":
                if isinstance(value, bool):
                    raise ValueError("boolean is not an integer")
                if isinstance(value, float):
                    if not value.is_integer():
                        raise ValueError(f"{value} is not a whole number")
                    return int(value)
                if isinstance(value, str):
                    number = float(value.strip())
                    if not number.is_integer():
                        raise ValueError(f"{value!r} is not a whole number")
                    return int(number)
                return int(value)

            if expected == "number":
                if isinstance(value, bool):
                    raise ValueError("boolean is not a number")
                if isinstance(value, (int, float)):
                    return value
                return float(str(value).strip())

            if expected == "boolean":
                if isinstance(value, bool):
                    return value
                text = str(value).strip().lower()
                if text in _TRUE_STRINGS:
                    return True
                if text in _FALSE_STRINGS:
                    return False
                raise ValueError(f"{value!r} is not a boolean")

            if expected in ("array", "object"):
                if isinstance(value, str):
                    value = json.loads(value)
                wanted = list if expected == "array" else dict
                if not isinstance(value, wanted):
                    raise ValueError(f"expected {expected}, got {type(value).__name__}")
                return value
        except (TypeError, ValueError) as e:
            raise ToolArgumentError(
                f"Invalid value for parameter '{name}' of '{tool_name}': {e}",
                tool_name=tool_name,
                arguments={name: value}
            ) from e

        return value

from typing import Dict, List, Any, Optional, Iterable

from baton.domain.tool.tool import Tool


class ToolRegistry:
    """Name -> Tool mapping for one agent's bound tools"""

    def __init__(self, tools: Optional[Iterable[Tool]] = None):
        self.tools: Dict[str, Tool] = {}
        for tool in tools or []:
            self.register_tool(tool)

    def register_tool(self, tool: Tool) -> None:
        """Register a new tool, rejecting duplicate names"""

        if tool.name in self.tools:
            raise ValueError(f"Duplicate tool name: {tool.name}")
        self.tools[tool.name] = tool

    def get_tool(self, name: str) -> Optional[Tool]:
        return self.tools.get(name)

    def names(self) -> List[str]:
        return list(self.tools.keys())

    def get_schemas(self) -> List[Dict[str, Any]]:
        """Provider-facing schemas of all tools, in registration order"""

        return [tool.to_schema() for tool in self.tools.values()]

    def search_tools(self, query: str) -> List[Tool]:
        """Search tools by name or description"""

        query_lower = query.lower()
        return [
            tool for tool in self.tools.values()
            if query_lower in tool.name.lower() or query_lower in tool.description.lower()
        ]

    def __contains__(self, name: object) -> bool:
        return name in self.tools

    def __len__(self) -> int:
        return len(self.tools)

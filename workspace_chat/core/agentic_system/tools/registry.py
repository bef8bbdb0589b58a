"""
Tool registry.

Dependencies: langchain_core.tools
System role: Lookup of available tools and their display names
"""

from typing import Iterable

from langchain_core.tools import BaseTool

TOOL_DISPLAY_NAMES: dict[str, str] = {
    "web_search": "Web Search",
    "doc_gen": "Document Generator",
    "chart_gen": "Chart Generator",
    "data_source": "Data Query",
    "task_planner": "Task Planner",
    "function_api": "External API",
    "youtube": "YouTube",
}


def display_name_for(name: str) -> str:
    """Human-readable tool name; unknown tools are title-cased."""
    return TOOL_DISPLAY_NAMES.get(name) or name.replace("_", " ").title()


class ToolRegistry:
    """Application-wide set of tools, filtered per workspace at request time."""

    def __init__(self, tools: Iterable[BaseTool] = ()) -> None:
        self._tools: dict[str, BaseTool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def select(self, enabled: Iterable[str]) -> list[BaseTool]:
        """Registered tools whose names are enabled, in registration order."""
        wanted = set(enabled)
        return [tool for name, tool in self._tools.items() if name in wanted]

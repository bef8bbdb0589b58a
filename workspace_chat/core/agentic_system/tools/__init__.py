"""
Built-in tools and the tool registry.
"""

from workspace_chat.core.agentic_system.tools.chart_tool import create_chart_tool
from workspace_chat.core.agentic_system.tools.registry import ToolRegistry, display_name_for
from workspace_chat.core.agentic_system.tools.web_search_tool import create_web_search_tool

__all__ = ["ToolRegistry", "display_name_for", "create_chart_tool", "create_web_search_tool"]

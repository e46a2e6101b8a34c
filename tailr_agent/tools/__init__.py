"""Tools the model can call, and the registry that holds them."""

from typing import List

from .ats_tool import OptimizeForATSTool
from .base import BaseTool, ToolContext, ToolResult, UploadedFile
from .content_tools import FindContentTool, ReplaceContentTool
from .registry import ToolRegistry
from .search_tool import SearchContextTool
from .section_tool import GenerateResumeSectionTool


def default_tools() -> List[BaseTool]:
    return [
        SearchContextTool(),
        GenerateResumeSectionTool(),
        OptimizeForATSTool(),
        FindContentTool(),
        ReplaceContentTool(),
    ]


def build_registry() -> ToolRegistry:
    """Registry with every built-in tool, frozen for shared use."""
    registry = ToolRegistry()
    for tool in default_tools():
        registry.register_tool(tool)
    return registry.freeze()


__all__ = [
    "BaseTool",
    "FindContentTool",
    "GenerateResumeSectionTool",
    "OptimizeForATSTool",
    "ReplaceContentTool",
    "SearchContextTool",
    "ToolContext",
    "ToolRegistry",
    "ToolResult",
    "UploadedFile",
    "build_registry",
    "default_tools",
]

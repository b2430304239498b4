"""工具系统：定义、内置文件工具与执行器。"""

from tool_agent.tools.definitions import ToolCall, ToolDef, ToolParam, ToolResult
from tool_agent.tools.executor import TOOL_NOT_FOUND, ToolExecutor
from tool_agent.tools.file_tools import default_tool_defs

__all__ = [
    "TOOL_NOT_FOUND",
    "ToolCall",
    "ToolDef",
    "ToolExecutor",
    "ToolParam",
    "ToolResult",
    "default_tool_defs",
]

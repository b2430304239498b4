"""工具数据结构定义。

这些 dataclass 描述了“工具调用”的 schema，既用于：
- 将可用工具目录暴露给模型（ToolDef / ToolParam）。
- 在对话循环中执行模型触发的工具调用（ToolCall / ToolResult）。
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Type

from pydantic import BaseModel

from tool_agent.domain.models import ChatMessage


@dataclass(frozen=True)
class ToolParam:
    """单个工具参数的定义。"""

    name: str
    description: str
    required: bool
    schema: Dict[str, Any]


@dataclass(frozen=True)
class ToolDef:
    """一个可供模型调用的工具定义。

    handler 接收由 input_model 解码后的强类型输入，返回文本；
    失败时抛出 ToolError / OSError，由 ToolExecutor 转成可恢复的文本结果。
    """

    name: str
    description: str
    params: Dict[str, ToolParam]
    input_model: Type[BaseModel]
    handler: Callable[[Any], str] = field(compare=False)

    def input_schema(self) -> Dict[str, Any]:
        """{type: object, required: [...], properties: {...}}"""

        properties: Dict[str, Any] = {}
        required: List[str] = []
        for name, param in self.params.items():
            schema = dict(param.schema or {"type": "string"})
            if param.description:
                schema["description"] = param.description
            properties[name] = schema
            if param.required:
                required.append(name)
        return {"type": "object", "required": required, "properties": properties}


@dataclass(frozen=True)
class ToolCall:
    """模型发起的一次工具调用请求（仅在产生它的那一轮内有效）。"""

    name: str
    arguments: Dict[str, Any]
    id: str = ""


@dataclass(frozen=True)
class ToolResult:
    """工具执行结果的封装（文本形式）。"""

    name: str
    content: str
    is_error: bool = False

    def to_message(self) -> ChatMessage:
        return ChatMessage(role="tool", content=self.content)

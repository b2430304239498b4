"""统一的对话数据模型。

本模块定义了对话循环与各 Provider 适配器之间共享的标准数据结构：

- ChatMessage: 一条对话消息（user/assistant/tool/...），追加到历史后不可变。
- ChatRequest: 一次推理调用的完整请求（全部历史 + 工具目录 + 流式开关）。
- ChatStreamChunk: Provider 回调给对话循环的单个增量片段（fragment）。

Provider 适配器（如 OllamaClient）只依赖这些模型，
并负责在各自的 API JSON 和这些模型之间做转换。
"""

from dataclasses import dataclass, field
from typing import Literal, Optional, Any, Dict, List, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    # 仅在类型检查时导入，避免运行时循环依赖
    from tool_agent.tools.definitions import ToolCall, ToolDef


# 消息角色（与 Ollama / OpenAI 的 role 字段对应）
Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True)
class ChatMessage:
    """一条对话消息，既可用于请求，也可作为流式片段的载体。

    - role: 消息角色。
    - content: 纯文本内容。
    - tool_calls: 模型在该片段中请求的工具调用（仅出现在 Provider 返回的片段里，
      追加到历史的合成消息不会携带该字段）。
    """

    role: Role
    content: str
    tool_calls: Optional[Tuple["ToolCall", ...]] = None


@dataclass
class ChatRequest:
    """一次完整的推理请求。

    每一轮都会重新发送完整历史，不存在增量/差分协议。
    """

    model: str  # 逻辑模型名（由 registry 映射为真实模型名，未登记则原样透传）
    messages: List[ChatMessage]
    tools: Optional[List["ToolDef"]] = None
    stream: bool = False
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChatUsage:
    """Provider 返回的 token 统计信息（统一格式）。"""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class ChatStreamChunk:
    """推理响应中的一个增量片段。

    message.content 为本片段的文本增量（可能为空），
    message.tool_calls 为本片段中模型请求的工具调用（可能为空），
    message.role 为后端声明的消息角色。
    done 为 True 表示这是本次调用的最后一个片段。
    """

    provider: str
    model: str
    message: ChatMessage
    done: bool = False
    done_reason: Optional[str] = None
    usage: Optional[ChatUsage] = None
    raw: Optional[dict] = None

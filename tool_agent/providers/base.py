"""Provider 抽象接口。

对话循环不直接依赖具体后端的 HTTP 协议，而是依赖此协议：

- 每种后端实现一个 ProviderClient（如 OllamaClient）。
- chat(req, handler) 把响应拆成若干 ChatStreamChunk，按顺序逐个交给 handler；
  正常返回即表示本次调用成功结束，失败时抛出 BusinessError 子类。
"""

from typing import Callable, Protocol

from tool_agent.domain.models import ChatRequest, ChatStreamChunk


ChunkHandler = Callable[[ChatStreamChunk], None]


class ProviderClient(Protocol):
    """推理后端客户端协议。

    - name: Provider 名称，用于日志与界面显示。
    - chat(req, handler): 执行一次推理调用，handler 会被调用零次或多次。
    """

    name: str

    def chat(self, req: ChatRequest, handler: ChunkHandler) -> None:
        ...

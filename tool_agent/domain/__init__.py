"""领域层模型。

包含：
- models: 统一的 ChatMessage / ChatRequest / ChatStreamChunk 模型。
- conversation: 只追加的进程内会话历史。
- exceptions: 业务异常类型定义。
"""

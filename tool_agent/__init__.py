"""tool_agent 顶层包。

终端对话 Agent：把本地终端会话桥接到推理后端（默认 Ollama），
并允许模型在对话中调用 read_file / list_files / edit_file 三个文件工具。
"""

from tool_agent.agents.agent import AgentConfig, ChatAgent
from tool_agent.domain.conversation import ConversationHistory
from tool_agent.domain.models import ChatMessage

__all__ = ["AgentConfig", "ChatAgent", "ChatMessage", "ConversationHistory"]

"""对话循环核心模块。

外层循环：读取一行用户输入 -> 追加 user 消息 -> 进入工具解析子循环 -> 等待下一行输入。
子循环：每一轮都把完整历史和全部工具目录发给后端，边接收片段边执行工具/输出内容，
把本轮所有文本合成一条消息追加到历史；若本轮发生过工具调用则继续下一轮，
否则本轮内容就是最终回答。
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Literal, Optional
from uuid import uuid4
import logging
import time

from tool_agent.domain.conversation import ConversationHistory
from tool_agent.domain.exceptions import BusinessError, ToolRoundLimitError
from tool_agent.domain.models import ChatMessage, ChatRequest, ChatStreamChunk, ChatUsage
from tool_agent.infrastructure.logging.logger import logger
from tool_agent.providers.base import ProviderClient
from tool_agent.tools.executor import ToolExecutor


# 后端模板泄漏到输出里的对话边界标记
CONTROL_TOKENS = ("<|im_start|>", "<|im_end|>")


@dataclass
class AgentConfig:
    provider: str
    model: str
    enable_tools: bool = True
    max_tool_rounds: int = 20  # 单轮对话内连续工具轮数上限
    stream: bool = False


@dataclass
class AgentEvent:
    """ChatAgent 产生的界面事件。

    kind:
        - "reply": 一轮对话开始等待模型输出。
        - "delta": 模型输出的内容增量，应立即显示。
        - "final": 本轮对话结束，携带最终 assistant 消息。
    """

    kind: Literal["reply", "delta", "final"]
    text: str = ""
    message: Optional[ChatMessage] = None


EventCallback = Callable[[AgentEvent], None]
UserInputSource = Callable[[], Optional[str]]


def remove_control_tokens(text: str) -> str:
    for token in CONTROL_TOKENS:
        text = text.replace(token, "")
    return text


class _RoundCollector:
    """收集一次推理调用的全部片段。"""

    def __init__(self, agent: "ChatAgent"):
        self._agent = agent
        self.tokens: List[str] = []
        self.saw_tool_call = False
        self.declared_role: Optional[str] = None
        self.usage: Optional[ChatUsage] = None
        self.chunk_count = 0

    def __call__(self, chunk: ChatStreamChunk) -> None:
        self.chunk_count += 1
        message = chunk.message
        if chunk.usage:
            self.usage = chunk.usage
        # 同一片段里先执行工具，再输出内容
        for call in message.tool_calls or ():
            result = self._agent.tool_executor.execute(call.name, call.arguments)
            self.saw_tool_call = True
            self.tokens.append(result.content)
        if message.content:
            self._agent._emit(AgentEvent(kind="delta", text=message.content))
            self.tokens.append(message.content)
            self.declared_role = message.role or "assistant"

    @property
    def role(self) -> str:
        # 只要本轮出现过工具调用，无论之后是否还有内容，都记为 tool
        if self.saw_tool_call:
            return "tool"
        return self.declared_role or "assistant"


class ChatAgent:
    def __init__(
        self,
        provider_client: ProviderClient,
        tool_executor: Optional[ToolExecutor] = None,
        config: Optional[AgentConfig] = None,
        on_event: Optional[EventCallback] = None,
        history: Optional[ConversationHistory] = None,
    ):
        self._provider_client = provider_client
        self.tool_executor = tool_executor or ToolExecutor(())
        self._config = config or AgentConfig(provider=provider_client.name, model="coder")
        self._on_event = on_event
        self._history = history if history is not None else ConversationHistory()

    @property
    def history(self) -> ConversationHistory:
        return self._history

    @property
    def config(self) -> AgentConfig:
        return self._config

    def run(self, get_user_message: UserInputSource) -> int:
        """交互主循环，输入耗尽（返回 None）时正常结束，返回完成的对话轮数。

        后端错误（BusinessError）不在这里处理，直接抛给调用方。
        """

        turns = 0
        while True:
            user_input = get_user_message()
            if user_input is None:
                break
            self.run_turn(user_input)
            turns += 1
        return turns

    def run_turn(self, user_input: str) -> ChatMessage:
        """执行一轮对话：用户输入 -> 若干工具轮 -> 最终回答。

        Returns:
            本轮最终的（非 tool）消息。

        Raises:
            BusinessError: 后端网络/协议错误，或工具轮数超过上限。
        """

        start_time = time.time()
        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "provider": self._config.provider,
            "model": self._config.model,
        }
        self._history.append(ChatMessage(role="user", content=user_input))
        self._emit(AgentEvent(kind="reply"))

        max_rounds = self._config.max_tool_rounds
        round_num = 0
        while True:
            round_num += 1
            try:
                message = self._run_inference(round_num, log_ctx)
            except BusinessError as e:
                self._log(logging.ERROR, "Inference failed", log_ctx, round=round_num, code=e.code, error=e.message)
                raise
            self._history.append(message)
            if message.role != "tool":
                break
            if round_num >= max_rounds:
                self._log(logging.WARNING, "Reached max tool rounds", log_ctx, max_rounds=max_rounds)
                raise ToolRoundLimitError(
                    code="TOOL_ROUND_LIMIT",
                    message=f"model kept requesting tools for {max_rounds} rounds without answering",
                    max_rounds=max_rounds,
                )

        self._emit(AgentEvent(kind="final", message=message))
        self._log(
            logging.INFO,
            "Completed turn",
            log_ctx,
            elapsed_seconds=round(time.time() - start_time, 2),
            tool_rounds=round_num - 1,
            history_length=len(self._history),
        )
        return message

    def _run_inference(self, round_num: int, log_ctx: Dict[str, Any]) -> ChatMessage:
        """一次推理调用，返回本轮的合成消息（尚未追加到历史）。"""

        tools = list(self.tool_executor.tool_defs) if self._config.enable_tools else None
        req = ChatRequest(
            model=self._config.model,
            messages=list(self._history.messages),
            tools=tools or None,
            stream=self._config.stream,
        )
        self._log(
            logging.INFO,
            "Calling provider",
            log_ctx,
            round=round_num,
            message_count=len(req.messages),
            tool_count=len(tools or ()),
        )

        collector = _RoundCollector(self)
        self._provider_client.chat(req, collector)

        if collector.usage:
            self._log(
                logging.INFO,
                "Token usage",
                log_ctx,
                prompt_tokens=collector.usage.prompt_tokens,
                completion_tokens=collector.usage.completion_tokens,
                total_tokens=collector.usage.total_tokens,
            )
        content = remove_control_tokens(" ".join(collector.tokens))
        self._log(
            logging.INFO,
            "Inference round finished",
            log_ctx,
            round=round_num,
            role=collector.role,
            chunks=collector.chunk_count,
        )
        return ChatMessage(role=collector.role, content=content)

    def _emit(self, event: AgentEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})

from typing import Iterator, List, Optional, Tuple

from .models import ChatMessage


class ConversationHistory:
    """进程内的会话历史，只允许追加。

    历史在进程启动时为空，随交互会话存在，退出时丢弃，不做持久化。
    """

    def __init__(self) -> None:
        self._messages: List[ChatMessage] = []

    def append(self, message: ChatMessage) -> ChatMessage:
        if not isinstance(message, ChatMessage):
            raise TypeError(f"expected ChatMessage, got {type(message).__name__}")
        self._messages.append(message)
        return message

    @property
    def messages(self) -> Tuple[ChatMessage, ...]:
        """当前历史的只读快照。"""
        return tuple(self._messages)

    @property
    def last(self) -> Optional[ChatMessage]:
        return self._messages[-1] if self._messages else None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(tuple(self._messages))

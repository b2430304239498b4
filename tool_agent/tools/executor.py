import logging
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from pydantic import ValidationError as InputValidationError

from tool_agent.domain.exceptions import ToolError
from tool_agent.domain.models import ChatMessage
from tool_agent.infrastructure.logging.logger import log_event, logger
from .definitions import ToolDef, ToolResult


TOOL_NOT_FOUND = "tool not found"

InvokeCallback = Callable[[str, Any], None]


def _describe_input_error(name: str, exc: InputValidationError) -> str:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "arguments"
        problems.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return f"invalid arguments for {name}: " + "; ".join(problems)


class ToolExecutor:
    """按名称分发工具调用。

    任何失败（未知工具、参数解码失败、处理函数报错）都会变成普通的文本结果，
    不会抛给调用方。
    """

    def __init__(self, tool_defs: Iterable[ToolDef], on_invoke: Optional[InvokeCallback] = None):
        self._tools: Dict[str, ToolDef] = {}
        for tool in tool_defs:
            if tool.name in self._tools:
                raise ValueError(f"duplicate tool name: {tool.name!r}")
            self._tools[tool.name] = tool
        self._on_invoke = on_invoke

    @property
    def tool_defs(self) -> tuple:
        return tuple(self._tools.values())

    def execute(self, name: str, arguments: Any) -> ToolResult:
        tool = self._tools.get(name)
        if tool is None:
            log_event(logging.WARNING, "Unknown tool requested", tool_name=name)
            return ToolResult(name=name, content=TOOL_NOT_FOUND, is_error=True)

        if self._on_invoke is not None:
            self._on_invoke(name, arguments)
        log_event(logging.INFO, "Tool call received", tool_name=name, tool_args=arguments)

        try:
            raw = dict(arguments) if isinstance(arguments, Mapping) else arguments
            decoded = tool.input_model.model_validate({} if raw is None else raw)
        except InputValidationError as exc:
            content = _describe_input_error(name, exc)
            log_event(logging.INFO, "Tool arguments rejected", tool_name=name, error=content)
            return ToolResult(name=name, content=content, is_error=True)

        try:
            output = tool.handler(decoded)
        except (ToolError, OSError) as exc:
            log_event(logging.INFO, "Tool execution failed", tool_name=name, error=str(exc))
            return ToolResult(name=name, content=str(exc), is_error=True)
        except Exception as exc:  # noqa: BLE001 - 处理函数的任何异常都要交还给模型
            logger.exception("Tool handler crashed: %s", name)
            return ToolResult(name=name, content=f"{type(exc).__name__}: {exc}", is_error=True)

        log_event(
            logging.INFO,
            "Tool execution finished",
            tool_name=name,
            result_preview=output[:200],
        )
        return ToolResult(name=name, content=output)

    def execute_message(self, name: str, arguments: Any) -> ChatMessage:
        return self.execute(name, arguments).to_message()

"""Rich rendering of the chat session.

Prompts, the model label and tool echoes are styled; model content is written
verbatim as it streams in (no markup, no highlighting). Rich drops the ANSI
codes when output is piped.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape

from tool_agent.agents.agent import AgentEvent


def get_console() -> Console:
    return Console(stderr=False, highlight=False)


def format_error(message: str, console: Console) -> None:
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)


def _format_arguments(arguments: Any) -> str:
    try:
        return json.dumps(arguments, ensure_ascii=False, sort_keys=True)
    except (TypeError, ValueError):
        return repr(arguments)


class ConsoleSession:
    """Terminal side of the conversation: reads user lines, renders agent events."""

    def __init__(self, console: Console, model_label: str):
        self.console = console
        self.model_label = model_label

    def banner(self) -> None:
        self.console.print(f"Chat with {escape(self.model_label)} (use 'ctrl-c' to quit)")

    def read_user_message(self) -> Optional[str]:
        """Prompt and read one line; ``None`` once stdin is exhausted."""
        try:
            return self.console.input("[bright_blue]You[/bright_blue]: ")
        except EOFError:
            return None

    def tool_invocation(self, name: str, arguments: Any) -> None:
        self.console.print(
            f"[bright_green]tool[/bright_green]: {escape(name)}({escape(_format_arguments(arguments))})"
        )

    def handle_event(self, event: AgentEvent) -> None:
        if event.kind == "reply":
            self.console.print(f"[yellow]{escape(self.model_label)}[/yellow]: ", end="")
        elif event.kind == "delta":
            self.console.print(event.text, end="", markup=False, highlight=False, soft_wrap=True)
        elif event.kind == "final":
            self.console.print()

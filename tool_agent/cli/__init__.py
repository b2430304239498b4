"""tool-agent CLI: chat with a local model that can read, list and edit files.

Loaded through the ``tool-agent`` entry point or ``python -m tool_agent``.
"""

from __future__ import annotations

import logging
from typing import Optional

import click
from pydantic import ValidationError as SettingsValidationError

from tool_agent.agents.agent import AgentConfig, ChatAgent
from tool_agent.cli.console import ConsoleSession, format_error, get_console
from tool_agent.config.settings import load_settings
from tool_agent.domain.exceptions import BusinessError
from tool_agent.infrastructure.logging.logger import log_event, setup_logger
from tool_agent.providers import create_provider
from tool_agent.tools import ToolExecutor, default_tool_defs


@click.command()
@click.option("--provider", default=None, help="Inference backend: ollama (default) or openai.")
@click.option("--model", default=None, help="Logical or backend model name.")
@click.option("--host", default=None, help="Ollama host, e.g. localhost:11434 (overrides OLLAMA_HOST).")
@click.option("--base-url", default=None, help="Base URL of an OpenAI-compatible endpoint.")
@click.option("--stream/--no-stream", default=None, help="Request a streaming response.")
@click.option("--max-tool-rounds", type=click.IntRange(min=1), default=None, help="Tool rounds allowed per turn.")
@click.option("--no-tools", is_flag=True, default=False, help="Do not offer file tools to the model.")
@click.option("--log-dir", default=None, type=click.Path(file_okay=False), help="Directory for agent.log.")
@click.pass_context
def cli(
    ctx: click.Context,
    provider: Optional[str],
    model: Optional[str],
    host: Optional[str],
    base_url: Optional[str],
    stream: Optional[bool],
    max_tool_rounds: Optional[int],
    no_tools: bool,
    log_dir: Optional[str],
) -> None:
    """Chat with a language model that may call read_file, list_files and edit_file."""
    console = get_console()
    try:
        settings = load_settings(
            default_provider=provider,
            default_model=model,
            ollama_host=host,
            openai_base_url=base_url,
            stream_responses=stream,
            max_tool_rounds=max_tool_rounds,
            log_dir=log_dir,
        )
    except SettingsValidationError as exc:
        format_error(f"invalid configuration: {exc}", console)
        ctx.exit(2)

    try:
        setup_logger(settings)
    except OSError as exc:
        format_error(f"cannot open log directory {settings.log_dir}: {exc}", console)
        ctx.exit(2)

    try:
        client = create_provider(settings)
    except BusinessError as exc:
        format_error(exc.message, console)
        ctx.exit(2)

    session = ConsoleSession(console, getattr(client, "display_name", client.name))
    executor = None
    if not no_tools:
        executor = ToolExecutor(default_tool_defs(), on_invoke=session.tool_invocation)
    agent = ChatAgent(
        provider_client=client,
        tool_executor=executor,
        config=AgentConfig(
            provider=client.name,
            model=settings.default_model,
            enable_tools=not no_tools,
            max_tool_rounds=settings.max_tool_rounds,
            stream=settings.stream_responses,
        ),
        on_event=session.handle_event,
    )

    session.banner()
    try:
        agent.run(session.read_user_message)
    except KeyboardInterrupt:
        console.print()
    except BusinessError as exc:
        console.print()
        log_event(logging.ERROR, "Session aborted", code=exc.code, error=exc.message)
        format_error(exc.message, console)
        ctx.exit(1)


def main() -> None:
    cli()

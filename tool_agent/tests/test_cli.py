"""CLI 端到端测试：用脚本化 Provider 替换真实后端。"""

from click.testing import CliRunner

from tool_agent.cli import cli
from tool_agent.domain.exceptions import NetworkError
from tool_agent.domain.models import ChatMessage, ChatStreamChunk
from tool_agent.tools import ToolCall


def _chunk(content="", calls=None):
    tool_calls = tuple(ToolCall(name=n, arguments=a) for n, a in calls) if calls else None
    return ChatStreamChunk(
        provider="fake",
        model="coder",
        message=ChatMessage(role="assistant", content=content, tool_calls=tool_calls),
        done=True,
    )


class ScriptedProvider:
    name = "fake"
    display_name = "Fake"

    def __init__(self, rounds=(), error=None):
        self._rounds = list(rounds)
        self._error = error
        self.requests = []

    def chat(self, req, handler):
        self.requests.append(req)
        if self._error is not None:
            raise self._error
        for c in self._rounds.pop(0):
            handler(c)


def _invoke(monkeypatch, isolated_config, provider, args=(), stdin=""):
    monkeypatch.setattr("tool_agent.cli.create_provider", lambda settings: provider)
    runner = CliRunner()
    return runner.invoke(cli, ["--log-dir", str(isolated_config / "logs"), *args], input=stdin)


def test_chat_until_eof(monkeypatch, isolated_config):
    provider = ScriptedProvider([[_chunk("hello there")]])
    result = _invoke(monkeypatch, isolated_config, provider, stdin="hi\n")
    assert result.exit_code == 0, result.output
    assert "Chat with Fake (use 'ctrl-c' to quit)" in result.output
    assert "hello there" in result.output
    assert provider.requests[0].messages[0].content == "hi"
    assert (isolated_config / "logs" / "agent.log").exists()


def test_tool_invocation_is_echoed(monkeypatch, isolated_config):
    (isolated_config / "notes.txt").write_text("abc", encoding="utf-8")
    provider = ScriptedProvider(
        [
            [_chunk(calls=[("read_file", {"path": "notes.txt"})])],
            [_chunk("It contains abc.")],
        ]
    )
    result = _invoke(monkeypatch, isolated_config, provider, stdin="read it\n")
    assert result.exit_code == 0, result.output
    assert 'tool: read_file({"path": "notes.txt"})' in result.output
    assert "It contains abc." in result.output
    assert provider.requests[1].messages[-1].content == "abc"


def test_no_tools_flag(monkeypatch, isolated_config):
    provider = ScriptedProvider([[_chunk("ok")]])
    result = _invoke(monkeypatch, isolated_config, provider, args=["--no-tools"], stdin="hi\n")
    assert result.exit_code == 0
    assert provider.requests[0].tools is None


def test_stream_flag_reaches_request(monkeypatch, isolated_config):
    provider = ScriptedProvider([[_chunk("ok")]])
    _invoke(monkeypatch, isolated_config, provider, args=["--stream", "--model", "llama3.2"], stdin="hi\n")
    assert provider.requests[0].stream is True
    assert provider.requests[0].model == "llama3.2"


def test_backend_failure_exits_nonzero(monkeypatch, isolated_config):
    provider = ScriptedProvider(error=NetworkError(code="NETWORK_ERROR", message="connection refused"))
    result = _invoke(monkeypatch, isolated_config, provider, stdin="hi\nnever read\n")
    assert result.exit_code == 1
    assert "Error: connection refused" in result.output
    assert len(provider.requests) == 1


def test_ctrl_c_exits_cleanly(monkeypatch, isolated_config):
    provider = ScriptedProvider(error=KeyboardInterrupt())
    result = _invoke(monkeypatch, isolated_config, provider, stdin="hi\n")
    assert result.exit_code == 0


def test_unknown_provider_is_a_usage_error(isolated_config):
    result = CliRunner().invoke(
        cli, ["--provider", "nope", "--log-dir", str(isolated_config / "logs")], input=""
    )
    assert result.exit_code == 2
    assert "Unknown provider" in result.output


def test_invalid_rounds_rejected(isolated_config):
    result = CliRunner().invoke(cli, ["--max-tool-rounds", "0"], input="")
    assert result.exit_code == 2


def test_unusable_log_dir_is_a_startup_error(monkeypatch, isolated_config):
    (isolated_config / "not_a_dir").write_text("", encoding="utf-8")
    provider = ScriptedProvider([[_chunk("never")]])
    monkeypatch.setattr("tool_agent.cli.create_provider", lambda settings: provider)
    result = CliRunner().invoke(cli, ["--log-dir", str(isolated_config / "not_a_dir" / "logs")], input="hi\n")
    assert result.exit_code == 2
    assert "cannot open log directory" in result.output
    assert provider.requests == []

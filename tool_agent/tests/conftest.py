import json

import pytest


class FakeResponse:
    def __init__(self, status_code=200, body=None, lines=()):
        self.status_code = status_code
        self._body = body
        self._lines = list(lines)

    @property
    def text(self):
        return self._body if isinstance(self._body, str) else json.dumps(self._body)

    def json(self):
        if isinstance(self._body, str):
            return json.loads(self._body)
        return self._body

    def read(self):
        return self.text.encode()

    def iter_lines(self):
        for line in self._lines:
            yield line


class _StreamContext:
    def __init__(self, response):
        self._response = response

    def __enter__(self):
        return self._response

    def __exit__(self, *args):
        return False


@pytest.fixture
def fake_http(monkeypatch):
    """替换 httpx.Client，返回值记录请求 URL、payload 与 headers。"""

    def install(status_code=200, body=None, lines=()):
        response = FakeResponse(status_code=status_code, body=body, lines=lines)
        captured = {}

        class Client:
            def __init__(self, *a, **kw):
                captured["client_kwargs"] = kw

            def __enter__(self):
                return self

            def __exit__(self, *a):
                return False

            def post(self, url, json=None, headers=None, **_):
                captured.update(url=url, payload=json, headers=headers)
                return response

            def stream(self, method, url, json=None, headers=None, **_):
                captured.update(method=method, url=url, payload=json, headers=headers)
                return _StreamContext(response)

        monkeypatch.setattr("httpx.Client", Client)
        return captured

    return install


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """隔离 config.yaml、.env 与相关环境变量。"""

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("AGENT_CONFIG_FILE", str(tmp_path / "absent.yaml"))
    for var in (
        "OLLAMA_HOST",
        "DEFAULT_PROVIDER",
        "DEFAULT_MODEL",
        "OPENAI_BASE_URL",
        "OPENAI_API_KEY",
        "STREAM_RESPONSES",
        "MAX_TOOL_ROUNDS",
        "LOG_DIR",
    ):
        monkeypatch.delenv(var, raising=False)
    return tmp_path

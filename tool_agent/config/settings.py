"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。
配置在启动时解析一次（load_settings），之后显式传递给各组件，
不在调用链深处临时读取环境变量。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_OLLAMA_HOST = "localhost:11435"


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("AGENT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path.home() / ".tool_agent" / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """运行配置。

    优先级：构造参数 > 环境变量 > .env > config.yaml > 默认值。
    """

    # ---- Provider 相关配置 ----
    default_provider: str = Field(
        default="ollama",
        description="默认使用的 Provider 名称，例如 ollama、openai",
    )
    default_model: str = Field(
        default="coder",
        description="逻辑模型名，由 registry 映射为具体模型；未登记的名称原样透传",
    )

    # Ollama（OLLAMA_HOST 可只写 host:port）
    ollama_host: str = Field(default=DEFAULT_OLLAMA_HOST, description="Ollama 服务地址")
    # OpenAI 兼容接口（llama.cpp、vLLM、Ollama /v1 等）
    openai_base_url: str = Field(
        default="http://localhost:11434/v1",
        description="OpenAI 兼容接口基础URL",
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI 兼容接口密钥")

    http_timeout: float = Field(default=300.0, ge=1.0, description="HTTP 超时时间（秒）")
    stream_responses: bool = Field(default=False, description="是否请求流式响应")
    max_tool_rounds: int = Field(
        default=20,
        ge=1,
        le=100,
        description="单轮对话内连续工具调用的最大轮数",
    )
    log_dir: str = Field(
        default_factory=lambda: str(Path.home() / ".tool_agent" / "logs"),
        description="日志目录",
    )
    log_redact_content: bool = Field(default=False, description="是否截断日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("ollama_host")
    @classmethod
    def normalize_host(cls, v: str) -> str:
        v = (v or "").strip() or DEFAULT_OLLAMA_HOST
        if "://" not in v:
            v = f"http://{v}"
        return v.rstrip("/")

    @field_validator("openai_base_url")
    @classmethod
    def strip_base_url(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @field_validator("openai_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


def load_settings(**overrides: Any) -> Settings:
    """解析配置；值为 None 的覆盖项会被忽略（便于直接传入 CLI 参数）。"""

    return Settings(**{k: v for k, v in overrides.items() if v is not None})

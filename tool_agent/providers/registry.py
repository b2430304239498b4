"""Provider 与模型配置。

本模块将“逻辑模型名”与“后端实际模型名”解耦：

- 逻辑名（logical_name）：在配置和命令行里使用的统一名称，例如 "coder"。
- provider_model：后端实际加载的模型 ID，例如 "qwen2.5-coder:32b-instruct-q8_0"。

未登记的名称会原样透传给后端，方便直接使用任意本地模型。"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping


@dataclass
class ModelConfig:
    """单个逻辑模型的配置。"""

    logical_name: str
    provider_model: str
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    display_name: str
    base_url: str
    models: Dict[str, ModelConfig]

    def resolve_model(self, name: str) -> ModelConfig:
        cfg = self.models.get(name)
        if cfg is not None:
            return cfg
        return ModelConfig(logical_name=name, provider_model=name)


_CODER = ModelConfig(
    logical_name="coder",
    provider_model="qwen2.5-coder:32b-instruct-q8_0",
)

# Ollama 原生接口
OLLAMA_CONFIG = ProviderConfig(
    name="ollama",
    display_name="Ollama",
    base_url="http://localhost:11435",
    models={"coder": _CODER},
)

# OpenAI 兼容接口（默认指向本机 Ollama 的 /v1）
OPENAI_CONFIG = ProviderConfig(
    name="openai",
    display_name="OpenAI-compatible",
    base_url="http://localhost:11434/v1",
    models={"coder": _CODER},
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "ollama": OLLAMA_CONFIG,
    "openai": OPENAI_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")

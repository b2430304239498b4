"""推理后端集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供各后端的具体实现 (ollama_client、openai_client)。
"""

from typing import Dict, Optional, Type

from tool_agent.config.settings import Settings
from tool_agent.domain.exceptions import ValidationError
from tool_agent.providers.base import ProviderClient
from tool_agent.providers.ollama_client import OllamaClient
from tool_agent.providers.openai_client import OpenAIClient
from tool_agent.providers.registry import get_provider_config


_CLIENT_CLASSES: Dict[str, Type] = {
    "ollama": OllamaClient,
    "openai": OpenAIClient,
}


def create_provider(settings: Settings, name: Optional[str] = None) -> ProviderClient:
    """根据名称创建 Provider 实例，默认取配置中的 default_provider。"""

    provider_name = name or getattr(settings, "default_provider", "ollama")
    try:
        cfg = get_provider_config(provider_name)
    except KeyError:
        raise ValidationError(code="UNKNOWN_PROVIDER", message=f"Unknown provider: {provider_name!r}")
    return _CLIENT_CLASSES[cfg.name](settings)

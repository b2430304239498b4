"""Ollama Provider 适配器。

本模块负责：

1. 接收统一的 ChatRequest。
2. 将其转换为 Ollama /api/chat 的请求格式。
3. 调用 HTTP 接口并处理网络/API 异常。
4. 把响应（流式时为 NDJSON 多行，非流式时为单个 JSON）逐个解析为
   ChatStreamChunk 并交给回调。

非流式响应同样走回调，只是只产生一个片段，对话循环无需区分两种模式。
"""

import json
from typing import Any, Dict, List, Optional

import httpx

from tool_agent.domain.exceptions import ApiError, NetworkError
from tool_agent.domain.models import ChatMessage, ChatRequest, ChatStreamChunk, ChatUsage
from tool_agent.providers.base import ChunkHandler
from tool_agent.providers.registry import OLLAMA_CONFIG
from tool_agent.tools.definitions import ToolCall, ToolDef


class OllamaClient:
    """Ollama 客户端实现。"""

    name = "ollama"
    display_name = OLLAMA_CONFIG.display_name

    def __init__(self, settings):
        # settings 里包含 ollama_host、超时等配置
        self._settings = settings

    @property
    def base_url(self) -> str:
        return (getattr(self._settings, "ollama_host", None) or OLLAMA_CONFIG.base_url).rstrip("/")

    def chat(self, req: ChatRequest, handler: ChunkHandler) -> None:
        """执行一次推理调用，把每个片段交给 handler。"""

        payload = self._build_payload(req)
        url = f"{self.base_url}/api/chat"
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                if not req.stream:
                    resp = client.post(url, json=payload)
                    self._check_status(resp.status_code, lambda: resp.text)
                    try:
                        data = resp.json()
                    except ValueError as e:
                        raise ApiError(code="BAD_RESPONSE", message=f"invalid JSON from Ollama: {e}")
                    handler(self._parse_chunk(data, req))
                    return

                with client.stream("POST", url, json=payload) as resp:
                    if resp.status_code >= 400:
                        resp.read()
                    self._check_status(resp.status_code, lambda: resp.text)
                    for line in resp.iter_lines():
                        line = line.strip()
                        if not line:
                            continue
                        try:
                            data = json.loads(line)
                        except json.JSONDecodeError:
                            continue
                        handler(self._parse_chunk(data, req))
        except httpx.RequestError as e:
            # 网络错误：连接被拒绝、DNS 失败、超时等
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, url=url)

    @staticmethod
    def _check_status(status_code: int, text) -> None:
        if status_code >= 400:
            body = text()
            message = body
            try:
                message = json.loads(body).get("error") or body
            except (ValueError, AttributeError):
                pass
            raise ApiError(code="API_ERROR", message=message, http_status=status_code)

    def _build_payload(self, req: ChatRequest) -> dict:
        """将 ChatRequest 转成 /api/chat 所需的请求 JSON。"""

        model_cfg = OLLAMA_CONFIG.resolve_model(req.model)
        payload: Dict[str, Any] = {
            "model": model_cfg.provider_model,
            "messages": [self._message_to_payload(m) for m in req.messages],
            "stream": req.stream,
        }
        if req.tools:
            payload["tools"] = [self._serialize_tool(tool) for tool in req.tools]
        options = {**model_cfg.options, **req.options}
        if options:
            payload["options"] = options
        return payload

    @staticmethod
    def _serialize_tool(tool: ToolDef) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.input_schema(),
            },
        }

    @staticmethod
    def _message_to_payload(message: ChatMessage) -> Dict[str, Any]:
        return {"role": message.role, "content": message.content}

    def _parse_chunk(self, data: Dict[str, Any], req: ChatRequest) -> ChatStreamChunk:
        """解析单个响应对象；服务端在流中报错时会返回 {"error": "..."}。"""

        if data.get("error"):
            raise ApiError(code="API_ERROR", message=str(data["error"]))

        msg = data.get("message") or {}
        tool_calls = self._parse_tool_calls(msg.get("tool_calls"))
        message = ChatMessage(
            role=msg.get("role") or "assistant",
            content=msg.get("content") or "",
            tool_calls=tool_calls,
        )
        usage = None
        if data.get("done") and ("prompt_eval_count" in data or "eval_count" in data):
            prompt = int(data.get("prompt_eval_count") or 0)
            completion = int(data.get("eval_count") or 0)
            usage = ChatUsage(
                prompt_tokens=prompt,
                completion_tokens=completion,
                total_tokens=prompt + completion,
            )
        return ChatStreamChunk(
            provider=self.name,
            model=req.model,
            message=message,
            done=bool(data.get("done")),
            done_reason=data.get("done_reason"),
            usage=usage,
            raw=data,
        )

    def _parse_tool_calls(self, raw_calls: Any) -> Optional[tuple]:
        if not raw_calls:
            return None
        calls: List[ToolCall] = []
        for idx, call in enumerate(raw_calls):
            func = call.get("function") or {}
            calls.append(
                ToolCall(
                    id=call.get("id") or f"tool_call_{idx}",
                    name=func.get("name") or call.get("name") or "",
                    arguments=self._parse_arguments(func.get("arguments")),
                )
            )
        return tuple(calls)

    @staticmethod
    def _parse_arguments(raw: Any) -> Dict[str, Any]:
        """Ollama 通常直接返回对象；个别模型模板会给出 JSON 字符串。"""

        if isinstance(raw, dict):
            return raw
        if isinstance(raw, str):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                return {"_raw": raw}
            return parsed if isinstance(parsed, dict) else {"_raw": raw}
        return {}

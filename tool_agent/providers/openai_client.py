"""OpenAI 兼容 Provider 适配器。

适用于提供 chat/completions 端点的本地或远端服务（Ollama /v1、llama.cpp、vLLM 等）：
- URL: {base_url}/chat/completions
- 认证: Authorization: Bearer <api_key>（可选）
- 流式: SSE，每行 "data: {...}"，以 "data: [DONE]" 结束

流式模式下工具调用的参数是分片到达的，这里按 index 拼接完整后再作为一个片段交给回调，
保证对话循环拿到的始终是完整的 ToolCall。

历史中的 tool 消息以 user 角色发送（见 _message_to_payload）。
"""

import json
from typing import Any, Dict, List, Optional

import httpx

from tool_agent.domain.exceptions import ApiError, NetworkError
from tool_agent.domain.models import ChatMessage, ChatRequest, ChatStreamChunk, ChatUsage
from tool_agent.providers.base import ChunkHandler
from tool_agent.providers.registry import OPENAI_CONFIG
from tool_agent.tools.definitions import ToolCall, ToolDef


TOOL_OUTPUT_PREFIX = "Tool output: "


class OpenAIClient:
    """OpenAI 兼容接口客户端实现。"""

    name = "openai"
    display_name = OPENAI_CONFIG.display_name

    def __init__(self, settings):
        self._settings = settings

    @property
    def base_url(self) -> str:
        return (getattr(self._settings, "openai_base_url", None) or OPENAI_CONFIG.base_url).rstrip("/")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        api_key = getattr(self._settings, "openai_api_key", None)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    def chat(self, req: ChatRequest, handler: ChunkHandler) -> None:
        payload = self._build_payload(req)
        url = f"{self.base_url}/chat/completions"
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                if not req.stream:
                    resp = client.post(url, json=payload, headers=self._headers())
                    if resp.status_code >= 400:
                        raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
                    try:
                        data = resp.json()
                    except ValueError as e:
                        raise ApiError(code="BAD_RESPONSE", message=f"invalid JSON response: {e}")
                    handler(self._parse_response(data, req))
                    return

                with client.stream("POST", url, json=payload, headers=self._headers()) as resp:
                    if resp.status_code >= 400:
                        resp.read()
                        raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
                    self._consume_stream(resp.iter_lines(), req, handler)
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, url=url)

    # ---- 辅助方法 ----

    def _build_payload(self, req: ChatRequest) -> dict:
        model_cfg = OPENAI_CONFIG.resolve_model(req.model)
        payload: Dict[str, Any] = {
            "model": model_cfg.provider_model,
            "messages": [self._message_to_payload(m) for m in req.messages],
            "stream": req.stream,
        }
        if req.tools:
            payload["tools"] = [self._serialize_tool(tool) for tool in req.tools]
            payload["tool_choice"] = "auto"
        payload.update(model_cfg.options)
        payload.update(req.options)
        return payload

    @staticmethod
    def _message_to_payload(message: ChatMessage) -> Dict[str, Any]:
        """合成的 tool 消息没有 tool_call_id，严格的端点会拒绝 role=tool，因此改用 user 角色。"""

        if message.role == "tool":
            return {"role": "user", "content": f"{TOOL_OUTPUT_PREFIX}{message.content}"}
        return {"role": message.role, "content": message.content}

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

    def _parse_response(self, data: dict, req: ChatRequest) -> ChatStreamChunk:
        if data.get("error"):
            raise ApiError(code="API_ERROR", message=json.dumps(data["error"], ensure_ascii=False))
        choices = data.get("choices") or []
        ch = choices[0] if choices else {}
        msg = ch.get("message") or {}
        tool_calls = [
            self._tool_call_from_payload(idx, call) for idx, call in enumerate(msg.get("tool_calls") or [])
        ]
        return ChatStreamChunk(
            provider=self.name,
            model=req.model,
            message=ChatMessage(
                role=msg.get("role") or "assistant",
                content=msg.get("content") or "",
                tool_calls=tuple(tool_calls) or None,
            ),
            done=True,
            done_reason=ch.get("finish_reason"),
            usage=self._parse_usage(data.get("usage")),
            raw=data,
        )

    def _consume_stream(self, lines, req: ChatRequest, handler: ChunkHandler) -> None:
        pending: Dict[int, Dict[str, Any]] = {}
        role = "assistant"
        usage: Optional[ChatUsage] = None
        finish_reason: Optional[str] = None

        for line in lines:
            data_str = line.strip()
            if data_str.startswith("data:"):
                data_str = data_str[5:].strip()
            if not data_str:
                continue
            if data_str == "[DONE]":
                break
            try:
                data = json.loads(data_str)
            except json.JSONDecodeError:
                continue
            if data.get("error"):
                raise ApiError(code="API_ERROR", message=json.dumps(data["error"], ensure_ascii=False))
            usage = self._parse_usage(data.get("usage")) or usage
            for ch in data.get("choices") or []:
                delta = ch.get("delta") or {}
                role = delta.get("role") or role
                for call in delta.get("tool_calls") or []:
                    slot = pending.setdefault(call.get("index", len(pending)), {"function": {"arguments": ""}})
                    if call.get("id"):
                        slot["id"] = call["id"]
                    func = call.get("function") or {}
                    if func.get("name"):
                        slot["function"]["name"] = func["name"]
                    slot["function"]["arguments"] += func.get("arguments") or ""
                content = delta.get("content") or ""
                if content:
                    handler(
                        ChatStreamChunk(
                            provider=self.name,
                            model=req.model,
                            message=ChatMessage(role=role, content=content),
                            raw=data,
                        )
                    )
                if ch.get("finish_reason"):
                    finish_reason = ch["finish_reason"]

        tool_calls = [self._tool_call_from_payload(idx, pending[idx]) for idx in sorted(pending)]
        handler(
            ChatStreamChunk(
                provider=self.name,
                model=req.model,
                message=ChatMessage(role=role, content="", tool_calls=tuple(tool_calls) or None),
                done=True,
                done_reason=finish_reason,
                usage=usage,
            )
        )

    def _tool_call_from_payload(self, idx: int, call: Dict[str, Any]) -> ToolCall:
        func = call.get("function") or {}
        return ToolCall(
            id=call.get("id") or f"tool_call_{idx}",
            name=func.get("name") or call.get("name") or "",
            arguments=self._parse_arguments(func.get("arguments")),
        )

    @staticmethod
    def _parse_usage(raw: Optional[Dict[str, Any]]) -> Optional[ChatUsage]:
        if not raw:
            return None
        return ChatUsage(
            prompt_tokens=raw.get("prompt_tokens", 0),
            completion_tokens=raw.get("completion_tokens", 0),
            total_tokens=raw.get("total_tokens", 0),
        )

    @staticmethod
    def _parse_arguments(raw: Any) -> Dict[str, Any]:
        """arguments 通常是 JSON 字符串，解析失败时保留原文到 `_raw`。"""

        if isinstance(raw, dict):
            return raw
        if isinstance(raw, str):
            if not raw.strip():
                return {}
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                return {"_raw": raw}
            return parsed if isinstance(parsed, dict) else {"_raw": raw}
        return {}

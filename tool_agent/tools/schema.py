"""把 pydantic 输入模型反射为最小化的工具参数 schema。

只发布后端需要的子集：每个属性的 ``type``、``description``、``enum``，
以及哪些属性是必填的。
"""

from typing import Any, Dict, List, Type

from pydantic import BaseModel

from .definitions import ToolParam


def _property_type(prop: Dict[str, Any]) -> str:
    if "type" in prop:
        return prop["type"]
    # Optional[str] 在 JSON schema 中表现为 anyOf [{type: string}, {type: null}]
    for option in prop.get("anyOf", []):
        if option.get("type") not in (None, "null"):
            return option["type"]
    return "string"


def _string_enum(prop: Dict[str, Any]) -> List[str]:
    return [item for item in prop.get("enum", []) if isinstance(item, str)]


def build_params(input_model: Type[BaseModel]) -> Dict[str, ToolParam]:
    schema = input_model.model_json_schema()
    required = set(schema.get("required", []))
    params: Dict[str, ToolParam] = {}
    for name, prop in schema.get("properties", {}).items():
        param_schema: Dict[str, Any] = {"type": _property_type(prop)}
        enum = _string_enum(prop)
        if enum:
            param_schema["enum"] = enum
        params[name] = ToolParam(
            name=name,
            description=prop.get("description", ""),
            required=name in required,
            schema=param_schema,
        )
    return params

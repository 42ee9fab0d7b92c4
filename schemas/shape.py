"""Output shapes derived from the document contracts.

A shape names the contract model a generation call must produce, one value
or an array of them, optionally reduced to some of the model's fields. The
schema itself always comes from ``model_json_schema()``, so the document
models and the generation schemas cannot drift apart. The same shape serves
providers with native structured output (rendered as a self-contained
JSON-schema dict) and providers without it (rendered as a textual hint that
is embedded in the instruction).
"""

import copy
import json
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Any, Dict, Iterable, Optional, Tuple, Type

from pydantic import BaseModel

TEXT_HINT_HEADER = "RESPONSE JSON SCHEMA (you MUST follow this structure exactly):"

# Keys of the OpenAPI subset accepted by native structured output
_SCALAR_KEYS = ("type", "format", "description", "enum")


@dataclass(frozen=True)
class Shape:
    """Declared output of one generation call.

    Attributes:
        model: Contract model of the value, or of one item when ``many``
        many: The reply is an array of ``model`` items
        fields: Wire names kept from ``model``, in this order; None keeps all
    """
    model: Type[BaseModel]
    many: bool = False
    fields: Optional[Tuple[str, ...]] = None

    @property
    def kind(self) -> str:
        return "array" if self.many else "object"

    @property
    def properties(self) -> Dict[str, Dict[str, Any]]:
        """Property schemas of one value, keyed by wire name."""
        return _item_schema(self)["properties"]

    def subset(self, names: Iterable[str]) -> "Shape":
        """Reduced shape containing only ``names``.

        Unknown names are ignored so callers can pass any list of empty fields.
        """
        available = self.properties
        return replace(self, fields=tuple(name for name in names if name in available))


def one(model: Type[BaseModel], *fields: str) -> Shape:
    return Shape(model, fields=fields or None)


def many(model: Type[BaseModel], *fields: str) -> Shape:
    return Shape(model, many=True, fields=fields or None)


def _resolve(node: Dict[str, Any], defs: Dict[str, Any]) -> Dict[str, Any]:
    """Inline ``$ref``, ``allOf`` and nullable ``anyOf`` nodes, keeping native-schema keys only."""
    if "allOf" in node and len(node["allOf"]) == 1:
        node = {**node["allOf"][0], **{key: value for key, value in node.items() if key != "allOf"}}
    if "$ref" in node:
        schema = _resolve(defs[node["$ref"].rsplit("/", 1)[-1]], defs)
        if node.get("description"):
            schema["description"] = node["description"]
        return schema
    if "anyOf" in node:
        options = [option for option in node["anyOf"] if option.get("type") != "null"]
        schema = _resolve(options[0], defs) if options else {"type": "string"}
        if len(options) < len(node["anyOf"]):
            schema["nullable"] = True
        if node.get("description"):
            schema["description"] = node["description"]
        return schema

    schema = {key: node[key] for key in _SCALAR_KEYS if key in node}
    if "properties" in node:
        schema["type"] = "object"
        schema["properties"] = {name: _resolve(child, defs) for name, child in node["properties"].items()}
        schema["required"] = list(schema["properties"])
    if "items" in node:
        schema["items"] = _resolve(node["items"], defs)
    return schema


@lru_cache(maxsize=None)
def contract_schema(model: Type[BaseModel]) -> Dict[str, Any]:
    """Self-contained schema of ``model`` in wire form.

    Every property is required in generated output; ``$defs`` are inlined
    because native structured output does not follow references.
    """
    schema = model.model_json_schema(by_alias=True)
    return _resolve(schema, schema.get("$defs", {}))


def _item_schema(shape: Shape) -> Dict[str, Any]:
    schema = copy.deepcopy(contract_schema(shape.model))
    if shape.fields is not None:
        schema["properties"] = {name: schema["properties"][name] for name in shape.fields}
        schema["required"] = list(shape.fields)
    return schema


def to_json_schema(shape: Shape) -> Dict[str, Any]:
    """Render a native structured-output declaration (JSON-schema subset)."""
    item = _item_schema(shape)
    if shape.many:
        return {"type": "array", "items": item}
    return item


def _simplify(schema: Dict[str, Any]) -> Any:
    if "properties" in schema:
        return {
            "type": "object",
            "properties": {name: _simplify(child) for name, child in schema["properties"].items()},
            "required": schema["required"],
        }
    if "items" in schema:
        return {"type": "array", "items": _simplify(schema["items"])}
    if "enum" in schema:
        return {"type": "string", "enum": schema["enum"]}
    kind = schema.get("type", "string")
    return f"{kind} ({schema['description']})" if schema.get("description") else kind


def to_text_hint(shape: Shape) -> str:
    """Render the schema as an instruction block for providers without native schema support."""
    return f"{TEXT_HINT_HEADER}\n{json.dumps(_simplify(to_json_schema(shape)), indent=2)}"


def json_kind(value: Any) -> str:
    """Top-level JSON kind of a parsed value, named as in JSON schema."""
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    if isinstance(value, str):
        return "string"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "null"

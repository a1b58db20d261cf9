"""OpenAPI schema conversion.

Raw OpenAPI schema objects are normalized into a small tagged union of
``SchemaNode`` variants with every ``$ref`` resolved. Nodes can then be
rendered as JSON Schema (for MCP ``inputSchema``) or as a pydantic
``TypeAdapter`` (for runtime checks).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Annotated, Any, Callable, Literal, Mapping, Optional

import structlog
from pydantic import (
    AfterValidator,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    create_model,
)

logger = structlog.get_logger(__name__)

PRIMITIVE_KINDS = ("string", "number", "integer", "boolean")

# Attributes copied verbatim from OpenAPI and back out to JSON Schema.
_SCALAR_KEYS = ("format", "minimum", "maximum", "pattern")


# ----------------------------------------------------------------------
# Node types
# ----------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class SchemaNode:
    """Attributes shared by every node variant."""

    description: str | None = None
    format: str | None = None
    minimum: float | None = None
    maximum: float | None = None
    pattern: str | None = None


@dataclass(frozen=True, kw_only=True)
class ObjectNode(SchemaNode):
    properties: dict[str, SchemaNode] = field(default_factory=dict)
    required: tuple[str, ...] = ()


@dataclass(frozen=True, kw_only=True)
class ArrayNode(SchemaNode):
    items: SchemaNode | None = None


@dataclass(frozen=True, kw_only=True)
class PrimitiveNode(SchemaNode):
    kind: str = "string"  # one of PRIMITIVE_KINDS


@dataclass(frozen=True, kw_only=True)
class EnumNode(SchemaNode):
    values: tuple[Any, ...] = ()
    kind: str | None = None


@dataclass(frozen=True, kw_only=True)
class AnyNode(SchemaNode):
    """Schema without a recognizable type: accepts any value."""


def _unknown_node(node: Any) -> TypeError:
    return TypeError(f"Unsupported schema node: {type(node).__name__}")


# ----------------------------------------------------------------------
# Conversion from OpenAPI
# ----------------------------------------------------------------------


class SchemaConverter:
    """Converts raw schemas of one OpenAPI document into ``SchemaNode``s."""

    def __init__(self, document: Mapping[str, Any]):
        self._document = document
        # $ref pointers currently being expanded, innermost last
        self._resolving: list[str] = []

    def lookup(self, pointer: str) -> Any | None:
        """Walk a local JSON pointer (``#/a/b``) into the raw document."""
        parts = pointer.split("/")
        if parts[0] != "#":
            return None
        current: Any = self._document
        for part in parts[1:]:
            part = part.replace("~1", "/").replace("~0", "~")
            if isinstance(current, Mapping) and part in current:
                current = current[part]
            elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
                current = current[int(part)]
            else:
                return None
        return current

    def resolve_reference(self, pointer: str) -> SchemaNode:
        """Resolve ``pointer`` to a node, falling back to a generic object."""
        if pointer in self._resolving:
            logger.warning("Cyclic $ref replaced by generic object", ref=pointer)
            return ObjectNode()
        target = self.lookup(pointer)
        if not isinstance(target, Mapping):
            logger.debug("Unresolvable $ref replaced by generic object", ref=pointer)
            return ObjectNode()
        self._resolving.append(pointer)
        try:
            return self.to_schema_node(target)
        finally:
            self._resolving.pop()

    def to_schema_node(self, raw: Any) -> SchemaNode:
        if not isinstance(raw, Mapping):
            return AnyNode()
        ref = raw.get("$ref")
        if isinstance(ref, str):
            return self.resolve_reference(ref)
        branches = raw.get("allOf")
        if isinstance(branches, list) and branches:
            own = {k: v for k, v in raw.items() if k != "allOf"}
            parts = [self._collect(own)]
            parts.extend(_node_attrs(self.to_schema_node(b)) for b in branches)
            return _build_node(_merge_attrs(parts))
        return _build_node(self._collect(raw))

    def _collect(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        """Gather the attributes of a plain (non-combined) schema."""
        attrs: dict[str, Any] = {}
        kind = _normalize_type(raw.get("type"))
        if kind:
            attrs["type"] = kind
        if isinstance(raw.get("properties"), Mapping):
            attrs["properties"] = {
                name: self.to_schema_node(prop)
                for name, prop in raw["properties"].items()
            }
        if isinstance(raw.get("items"), Mapping):
            attrs["items"] = self.to_schema_node(raw["items"])
        if isinstance(raw.get("required"), list):
            attrs["required"] = [r for r in raw["required"] if isinstance(r, str)]
        if raw.get("description"):
            attrs["description"] = raw["description"]
        if isinstance(raw.get("enum"), list):
            attrs["enum"] = list(raw["enum"])
        for key in _SCALAR_KEYS:
            if raw.get(key) is not None:
                attrs[key] = raw[key]
        return attrs


def _normalize_type(value: Any) -> str | None:
    # OpenAPI 3.1 allows ["string", "null"]
    if isinstance(value, list):
        value = next((v for v in value if v != "null"), None)
    return value if isinstance(value, str) else None


def _build_node(attrs: Mapping[str, Any]) -> SchemaNode:
    common = {key: attrs.get(key) for key in ("description", *_SCALAR_KEYS)}
    kind = attrs.get("type")

    if "enum" in attrs:
        return EnumNode(values=tuple(attrs["enum"]), kind=kind, **common)
    if kind is None:
        if "properties" in attrs:
            kind = "object"
        elif "items" in attrs:
            kind = "array"
    if kind == "object":
        return ObjectNode(
            properties=dict(attrs.get("properties", {})),
            required=tuple(attrs.get("required", ())),
            **common,
        )
    if kind == "array":
        return ArrayNode(items=attrs.get("items"), **common)
    if kind in PRIMITIVE_KINDS:
        return PrimitiveNode(kind=kind, **common)
    return AnyNode(**common)


def _node_attrs(node: SchemaNode) -> dict[str, Any]:
    """Inverse of ``_build_node``, used to merge already-converted branches."""
    attrs: dict[str, Any] = {
        key: getattr(node, key)
        for key in ("description", *_SCALAR_KEYS)
        if getattr(node, key) is not None
    }
    if isinstance(node, ObjectNode):
        attrs["type"] = "object"
        attrs["properties"] = dict(node.properties)
        attrs["required"] = list(node.required)
    elif isinstance(node, ArrayNode):
        attrs["type"] = "array"
        if node.items is not None:
            attrs["items"] = node.items
    elif isinstance(node, PrimitiveNode):
        attrs["type"] = node.kind
    elif isinstance(node, EnumNode):
        attrs["enum"] = list(node.values)
        if node.kind:
            attrs["type"] = node.kind
    elif not isinstance(node, AnyNode):
        raise _unknown_node(node)
    return attrs


def _merge_attrs(parts: list[dict[str, Any]]) -> dict[str, Any]:
    """Merge allOf branches; scalar attributes are first-writer-wins."""
    merged: dict[str, Any] = {}
    properties: dict[str, SchemaNode] = {}
    required: list[str] = []

    for part in parts:
        for key in ("type", "description", "enum", "items", *_SCALAR_KEYS):
            if key in part and key not in merged:
                merged[key] = part[key]
        for name, prop in part.get("properties", {}).items():
            existing = properties.get(name)
            if existing is None:
                properties[name] = prop
            elif isinstance(existing, ObjectNode) and isinstance(prop, ObjectNode):
                properties[name] = _build_node(
                    _merge_attrs([_node_attrs(existing), _node_attrs(prop)])
                )
        for name in part.get("required", ()):
            if name not in required:
                required.append(name)

    if any("properties" in part for part in parts):
        merged["properties"] = properties
    if required:
        merged["required"] = required
    return merged


# ----------------------------------------------------------------------
# Rendering
# ----------------------------------------------------------------------


def to_json_schema(node: SchemaNode) -> dict[str, Any]:
    """Render a node as a JSON Schema dict."""
    schema: dict[str, Any]
    if isinstance(node, EnumNode):
        schema = {"enum": list(node.values)}
        if node.kind:
            schema["type"] = node.kind
    elif isinstance(node, ObjectNode):
        schema = {
            "type": "object",
            "properties": {
                name: to_json_schema(prop) for name, prop in node.properties.items()
            },
            "required": list(node.required),
        }
    elif isinstance(node, ArrayNode):
        schema = {"type": "array"}
        if node.items is not None:
            schema["items"] = to_json_schema(node.items)
    elif isinstance(node, PrimitiveNode):
        schema = {"type": node.kind}
    elif isinstance(node, AnyNode):
        schema = {}
    else:
        raise _unknown_node(node)

    for key in ("description", *_SCALAR_KEYS):
        value = getattr(node, key)
        if value is not None:
            schema[key] = value
    return schema


def _reject_bool(value: Any) -> Any:
    # bool is an int subclass; lax mode would coerce True to 1
    if isinstance(value, bool):
        raise ValueError("Input should be a valid number, not a boolean")
    return value


_PRIMITIVE_TYPES: dict[str, Any] = {
    "string": str,
    "number": Annotated[float, BeforeValidator(_reject_bool)],
    "integer": Annotated[int, BeforeValidator(_reject_bool)],
    "boolean": bool,
}


def to_validation_schema(node: SchemaNode) -> TypeAdapter:
    """Build a pydantic ``TypeAdapter`` that checks values against *node*."""
    return TypeAdapter(_described(node, _annotation(node, "Schema")))


def _described(node: SchemaNode, annotation: Any) -> Any:
    if node.description:
        return Annotated[annotation, Field(description=node.description)]
    return annotation


def _annotation(node: SchemaNode, name: str) -> Any:
    if isinstance(node, EnumNode):
        return _literal(node.values)
    if isinstance(node, ObjectNode):
        return _object_model(node, name)
    if isinstance(node, ArrayNode):
        if node.items is None:
            return list[Any]
        item = _described(node.items, _annotation(node.items, f"{name}Item"))
        return list[item]  # type: ignore[valid-type]
    if isinstance(node, PrimitiveNode):
        return _PRIMITIVE_TYPES.get(node.kind, Any)
    if isinstance(node, AnyNode):
        return Any
    raise _unknown_node(node)


def _object_model(node: ObjectNode, name: str) -> Any:
    fields: dict[str, Any] = {}
    # Property names are not always identifiers; they are carried as aliases.
    for index, (prop_name, prop) in enumerate(node.properties.items()):
        annotation = _annotation(prop, f"{name}_{_identifier(prop_name)}")
        if prop_name in node.required:
            fields[f"field_{index}"] = (
                annotation,
                Field(..., alias=prop_name, description=prop.description),
            )
        else:
            fields[f"field_{index}"] = (
                Optional[annotation],
                Field(None, alias=prop_name, description=prop.description),
            )
    return create_model(
        _identifier(name),
        __config__=ConfigDict(extra="allow"),
        **fields,
    )


def _literal(values: tuple[Any, ...]) -> Any:
    if not values:
        return Any
    if all(_is_hashable(v) for v in values):
        return Literal[values]  # type: ignore[valid-type]
    return Annotated[Any, AfterValidator(_one_of(values))]


def _one_of(values: tuple[Any, ...]) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        if value not in values:
            raise ValueError(f"Input should be one of {list(values)!r}")
        return value

    return check


def _is_hashable(value: Any) -> bool:
    try:
        hash(value)
    except TypeError:
        return False
    return True


def _identifier(text: str) -> str:
    return re.sub(r"\W+", "_", text).strip("_") or "Schema"

"""Fetch and parse the GoLogin OpenAPI document into an ApiDocument."""

from __future__ import annotations

import json
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

import httpx
import structlog
import yaml

from ..errors import ConfigError, LoadError
from .schema import SchemaConverter, SchemaNode

logger = structlog.get_logger(__name__)

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "head", "options")

PARAMETER_LOCATIONS = ("path", "query", "header")


@dataclass(frozen=True)
class ParameterSpec:
    """One declared path/query/header parameter."""

    name: str
    location: str  # path, query, header
    required: bool
    schema: SchemaNode
    description: str = ""


@dataclass(frozen=True)
class Operation:
    """One HTTP verb + path template from the document."""

    method: str  # GET, POST, …
    path: str  # /browser/{id}
    operation_id: str | None
    summary: str
    description: str
    parameters: tuple[ParameterSpec, ...]
    request_body: SchemaNode | None
    body_required: bool = False


@dataclass(frozen=True)
class ApiDocument:
    """The loaded OpenAPI document. Never mutated after parsing."""

    raw: Mapping[str, Any]
    base_url: str
    operations: tuple[Operation, ...]


class OpenAPIParser:
    """Fetches the OpenAPI document and converts it to an ApiDocument."""

    def __init__(self, url: str, timeout: float = 30):
        self.url = url
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_and_parse(self) -> ApiDocument:
        """Fetch the OpenAPI document and parse it."""
        raw = await self._fetch_document()
        return parse_document(raw)

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    async def _fetch_document(self) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(self.url)
        except httpx.HTTPError as e:
            logger.error("OpenAPI fetch failed", url=self.url, error=str(e))
            raise LoadError(f"Failed to fetch OpenAPI document: {e}") from e

        if not resp.is_success:
            raise LoadError(
                f"HTTP {resp.status_code}: {resp.reason_phrase}", resp.status_code
            )

        content_type = resp.headers.get("content-type", "")
        try:
            if "application/json" in content_type:
                raw = resp.json()
            else:
                raw = _parse_text(resp.text)
        except (ValueError, yaml.YAMLError) as e:
            raise LoadError(f"Unparsable OpenAPI document: {e}") from e

        if not isinstance(raw, dict):
            raise LoadError("OpenAPI document is not a mapping")

        logger.info("Fetched OpenAPI document", url=self.url, content_type=content_type)
        return raw


def _parse_text(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return yaml.safe_load(text)


# ----------------------------------------------------------------------
# Parse
# ----------------------------------------------------------------------


def parse_document(raw: Mapping[str, Any]) -> ApiDocument:
    """Build an ApiDocument from an already-loaded document dict."""
    base_url = get_base_url(raw)
    converter = SchemaConverter(raw)
    operations: list[Operation] = []

    paths = raw.get("paths") or {}
    if not isinstance(paths, Mapping):
        raise ConfigError("API spec 'paths' is not a mapping")
    for path, path_item in paths.items():
        if not isinstance(path_item, Mapping):
            continue
        shared = path_item.get("parameters") or []
        for method, op in path_item.items():
            if method not in HTTP_METHODS or not isinstance(op, Mapping):
                continue
            operations.append(_parse_operation(converter, method, path, op, shared))

    logger.info("Parsed OpenAPI document", operation_count=len(operations))
    return ApiDocument(
        raw=MappingProxyType(dict(raw)),
        base_url=base_url,
        operations=tuple(operations),
    )


def get_base_url(raw: Mapping[str, Any]) -> str:
    servers = raw.get("servers") or []
    if not isinstance(servers, list) or not servers:
        raise ConfigError("No servers found in API spec")
    first = servers[0]
    if isinstance(first, Mapping) and first.get("url"):
        return str(first["url"]).rstrip("/")
    raise ConfigError("No servers found in API spec")


def _parse_operation(
    converter: SchemaConverter,
    method: str,
    path: str,
    op: Mapping[str, Any],
    shared: list[Any],
) -> Operation:
    summary = op.get("summary") or ""
    body, body_required = _resolve_request_body(converter, op.get("requestBody"))
    return Operation(
        method=method.upper(),
        path=path,
        operation_id=op.get("operationId") or None,
        summary=summary,
        description=op.get("description") or summary,
        parameters=_resolve_parameters(converter, shared, op.get("parameters") or []),
        request_body=body,
        body_required=body_required,
    )


def _resolve_parameters(
    converter: SchemaConverter,
    shared: list[Any],
    own: list[Any],
) -> tuple[ParameterSpec, ...]:
    # operation-level declarations override path-level ones by (name, in)
    merged: dict[tuple[str, str], ParameterSpec] = {}
    for p in [*shared, *own]:
        p = _maybe_resolve_ref(converter, p)
        if not isinstance(p, Mapping):
            continue
        name, location = p.get("name"), p.get("in")
        if not name or location not in PARAMETER_LOCATIONS:
            continue
        schema = p.get("schema")
        merged[(name, location)] = ParameterSpec(
            name=name,
            location=location,
            required=bool(p.get("required", False)),
            schema=(
                converter.to_schema_node(schema)
                if schema is not None
                else converter.to_schema_node({"type": "string"})
            ),
            description=p.get("description") or "",
        )
    return tuple(merged.values())


def _resolve_request_body(
    converter: SchemaConverter,
    body: Any,
) -> tuple[SchemaNode | None, bool]:
    body = _maybe_resolve_ref(converter, body)
    if not isinstance(body, Mapping):
        return None, False
    json_content = (body.get("content") or {}).get("application/json") or {}
    schema = json_content.get("schema")
    if schema is None:
        return None, False
    return converter.to_schema_node(schema), bool(body.get("required", False))


def _maybe_resolve_ref(converter: SchemaConverter, obj: Any) -> Any:
    if isinstance(obj, Mapping) and isinstance(obj.get("$ref"), str):
        return converter.lookup(obj["$ref"])
    return obj

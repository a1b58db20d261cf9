"""Tool registry: derives tool names and input schemas from operations."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping

import structlog
from mcp.types import Tool

from ..errors import ToolNotFoundError
from .openapi_parser import ApiDocument, Operation
from .overrides import EXCLUDED_TOOL_NAMES
from .parameters import header_parameters, path_parameters, query_parameters
from .schema import ObjectNode, SchemaNode, to_json_schema

logger = structlog.get_logger(__name__)


def derive_tool_name(method: str, path: str, operation_id: str | None = None) -> str:
    """The one naming rule: operationId, else ``{method}_{path}`` slugged."""
    if operation_id:
        return operation_id
    return f"{method.lower()}_{re.sub(r'[^a-zA-Z0-9]', '_', path)}"


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: ObjectNode

    def to_mcp_tool(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=to_json_schema(self.input_schema),
        )


@dataclass(frozen=True)
class ToolEntry:
    descriptor: ToolDescriptor
    operation: Operation


@dataclass(frozen=True)
class NameCollision:
    """Two operations that derive the same tool name; the first one is kept."""

    name: str
    kept: Operation
    shadowed: Operation


@dataclass(frozen=True)
class LoadedCatalog:
    """Immutable snapshot of the document and the tools built from it."""

    document: ApiDocument
    tools: Mapping[str, ToolEntry]
    collisions: tuple[NameCollision, ...] = ()
    excluded: tuple[str, ...] = ()

    @property
    def base_url(self) -> str:
        return self.document.base_url

    @property
    def tool_names(self) -> list[str]:
        return list(self.tools)

    @property
    def tool_count(self) -> int:
        return len(self.tools)

    def get(self, tool_name: str) -> ToolEntry | None:
        return self.tools.get(tool_name)

    def lookup(self, tool_name: str) -> ToolEntry:
        entry = self.tools.get(tool_name)
        if entry is None:
            raise ToolNotFoundError(tool_name)
        return entry

    def get_mcp_tools(self) -> list[Tool]:
        return [entry.descriptor.to_mcp_tool() for entry in self.tools.values()]


@dataclass
class RegistryConfig:
    """Filtering knobs for the tool registry."""

    excluded_tools: frozenset[str] = field(
        default_factory=lambda: frozenset(EXCLUDED_TOOL_NAMES)
    )


class ToolRegistry:
    """Builds a LoadedCatalog from an ApiDocument."""

    def __init__(self, config: RegistryConfig | None = None):
        self.config = config or RegistryConfig()

    def build(self, document: ApiDocument) -> LoadedCatalog:
        tools: dict[str, ToolEntry] = {}
        collisions: list[NameCollision] = []
        excluded: list[str] = []

        for op in document.operations:
            name = derive_tool_name(op.method, op.path, op.operation_id)
            if name in self.config.excluded_tools:
                excluded.append(name)
                continue
            if name in tools:
                kept = tools[name].operation
                logger.warning(
                    "Tool name collision, keeping first operation",
                    tool=name,
                    kept=f"{kept.method} {kept.path}",
                    shadowed=f"{op.method} {op.path}",
                )
                collisions.append(NameCollision(name=name, kept=kept, shadowed=op))
                continue
            tools[name] = ToolEntry(descriptor=self.describe(name, op), operation=op)

        logger.info(
            "Tool catalog built",
            tool_count=len(tools),
            excluded=len(excluded),
            collisions=len(collisions),
        )
        return LoadedCatalog(
            document=document,
            tools=MappingProxyType(tools),
            collisions=tuple(collisions),
            excluded=tuple(excluded),
        )

    # ------------------------------------------------------------------
    # Descriptor builder
    # ------------------------------------------------------------------

    @classmethod
    def describe(cls, name: str, op: Operation) -> ToolDescriptor:
        description = op.summary or op.description or f"{op.method} {op.path}"
        return ToolDescriptor(
            name=name,
            description=description,
            input_schema=cls._build_input_schema(op),
        )

    @staticmethod
    def _build_input_schema(op: Operation) -> ObjectNode:
        """Compose the ``path``/``query``/``body``/``headers`` sections."""
        sections: dict[str, SchemaNode] = {}
        required: list[str] = []

        path = path_parameters(op)
        if path.properties:
            sections["path"] = _section(path, "Path parameters for URL substitution")
            if path.required:
                required.append("path")

        query = query_parameters(op)
        if query.properties:
            sections["query"] = _section(query, "Query parameters")
            if query.required:
                required.append("query")

        if op.request_body is not None:
            sections["body"] = replace(
                op.request_body, description="Request body parameters"
            )
            required.append("body")

        headers = header_parameters(op)
        sections["headers"] = _section(headers, "Additional headers for the request")
        if headers.required:
            required.append("headers")

        return ObjectNode(properties=sections, required=tuple(required))


def _section(node: ObjectNode, description: str) -> ObjectNode:
    return replace(node, description=description)

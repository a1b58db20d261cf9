"""Per-operation parameter sections for tool input schemas."""

from __future__ import annotations

import re
from dataclasses import replace

from .openapi_parser import Operation
from .schema import ObjectNode, PrimitiveNode, SchemaNode

PATH_TOKEN = re.compile(r"\{([^}]+)\}")


def path_tokens(path: str) -> list[str]:
    """Return the ``{name}`` tokens of a path template, in order."""
    return PATH_TOKEN.findall(path)


def path_parameters(operation: Operation) -> ObjectNode:
    """Declared path parameters plus every undeclared template token.

    Tokens without a declaration become required string parameters. A token
    is always required, even if its declaration says otherwise.
    """
    section = _declared(operation, "path")
    properties = dict(section.properties)
    required = list(section.required)
    for token in path_tokens(operation.path):
        if token not in properties:
            properties[token] = PrimitiveNode(
                kind="string", description=f"Path parameter: {token}"
            )
        if token not in required:
            required.append(token)
    return ObjectNode(properties=properties, required=tuple(required))


def query_parameters(operation: Operation) -> ObjectNode:
    return _declared(operation, "query")


def header_parameters(operation: Operation) -> ObjectNode:
    return _declared(operation, "header")


def required_headers(operation: Operation) -> list[str]:
    return [
        p.name
        for p in operation.parameters
        if p.location == "header" and p.required
    ]


def _declared(operation: Operation, location: str) -> ObjectNode:
    properties: dict[str, SchemaNode] = {}
    required: list[str] = []
    for param in operation.parameters:
        if param.location != location:
            continue
        schema = param.schema
        if param.description and not schema.description:
            schema = replace(schema, description=param.description)
        properties[param.name] = schema
        if param.required and param.name not in required:
            required.append(param.name)
    return ObjectNode(properties=properties, required=tuple(required))

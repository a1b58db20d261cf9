"""Pre-flight checks of invocation arguments against an operation."""

from __future__ import annotations

import re
from typing import Any, Mapping

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from ..models.schemas import CallParameters
from .openapi_parser import Operation
from .parameters import path_parameters, query_parameters, required_headers
from .schema import (
    ArrayNode,
    EnumNode,
    ObjectNode,
    PrimitiveNode,
    SchemaNode,
    to_validation_schema,
)

logger = structlog.get_logger(__name__)

_INTEGER = re.compile(r"[+-]?\d+")


class Validator:
    """Collects every violation instead of stopping at the first one."""

    def check(self, operation: Operation, params: CallParameters) -> None:
        errors = self.validate(operation, params)
        if errors:
            logger.info(
                "Validation failed",
                method=operation.method,
                path=operation.path,
                error_count=len(errors),
            )
            raise ValidationError(errors)

    def validate(self, operation: Operation, params: CallParameters) -> list[str]:
        errors: list[str] = []
        path_values = params.path or {}
        query_values = params.query or {}
        header_values = {k.lower(): v for k, v in (params.headers or {}).items()}

        for name in path_parameters(operation).required:
            if path_values.get(name) is None:
                errors.append(f"Missing required path parameter: {name}")

        for name in query_parameters(operation).required:
            if query_values.get(name) is None:
                errors.append(f"Missing required query parameter: {name}")

        if operation.request_body is not None and params.body is None:
            errors.append("Missing request body")

        for name in required_headers(operation):
            if header_values.get(name.lower()) is None:
                errors.append(f"Missing required header: {name}")

        for param in operation.parameters:
            if param.location == "header":
                value = header_values.get(param.name.lower())
            else:
                values: Mapping[str, Any] = (
                    path_values if param.location == "path" else query_values
                )
                value = values.get(param.name)
            if value is None:
                continue
            problem = _check_value(param.schema, value)
            if problem:
                errors.append(
                    f"Invalid value for {param.location} parameter "
                    f"'{param.name}': {problem}"
                )

        if operation.request_body is not None and params.body is not None:
            errors.extend(_check_body(operation.request_body, params.body))

        return errors


def _check_value(schema: SchemaNode, value: Any) -> str | None:
    """Return a problem description, or None if *value* fits *schema*."""
    if isinstance(schema, EnumNode):
        if value in schema.values or str(value) in {str(v) for v in schema.values}:
            return None
        return f"expected one of {list(schema.values)!r}, got {value!r}"
    if isinstance(schema, PrimitiveNode):
        if _is_compatible(schema.kind, value):
            return None
        return f"expected {schema.kind}, got {value!r}"
    if isinstance(schema, ArrayNode):
        if isinstance(value, (list, tuple, str)):
            return None
        return f"expected array, got {value!r}"
    if isinstance(schema, ObjectNode):
        if isinstance(value, dict):
            return None
        return f"expected object, got {value!r}"
    return None


def _is_compatible(kind: str, value: Any) -> bool:
    """Primitive check; numbers and booleans may arrive as strings."""
    if kind == "boolean":
        if isinstance(value, str):
            return value.strip().lower() in ("true", "false")
        return isinstance(value, bool)
    if isinstance(value, bool):
        return kind == "string"
    if kind == "integer":
        if isinstance(value, str):
            return bool(_INTEGER.fullmatch(value.strip()))
        if isinstance(value, float):
            return value.is_integer()
        return isinstance(value, int)
    if kind == "number":
        if isinstance(value, str):
            try:
                float(value)
            except ValueError:
                return False
            return True
        return isinstance(value, (int, float))
    if kind == "string":
        return isinstance(value, (str, int, float))
    return True


def _check_body(schema: SchemaNode, body: Any) -> list[str]:
    try:
        to_validation_schema(schema).validate_python(body)
    except PydanticValidationError as e:
        problems = []
        for err in e.errors():
            loc = ".".join(str(part) for part in err["loc"])
            if loc:
                problems.append(f"Invalid request body at '{loc}': {err['msg']}")
            else:
                problems.append(f"Invalid request body: {err['msg']}")
        return problems
    return []

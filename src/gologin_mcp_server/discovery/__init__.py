"""Discovery module for dynamic OpenAPI-based tool generation."""

from .dispatcher import Dispatcher
from .openapi_parser import ApiDocument, OpenAPIParser, Operation, ParameterSpec
from .tool_registry import LoadedCatalog, ToolDescriptor, ToolRegistry
from .validator import Validator

__all__ = [
    "ApiDocument",
    "Operation",
    "ParameterSpec",
    "OpenAPIParser",
    "LoadedCatalog",
    "ToolDescriptor",
    "ToolRegistry",
    "Validator",
    "Dispatcher",
]

"""Exception hierarchy for the GoLogin MCP server.

Load-time errors (``LoadError``, ``ConfigError``) abort startup. Everything
else is raised per invocation and converted into a tool result by the server.
"""

from typing import List, Optional


class GoLoginMCPError(Exception):
    """Base exception for all server errors."""


class LoadError(GoLoginMCPError):
    """The OpenAPI document could not be fetched or parsed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigError(GoLoginMCPError):
    """The OpenAPI document lacks information required to serve it."""


class SpecNotLoadedError(GoLoginMCPError):
    """A tool was invoked before the catalog was built."""

    def __init__(self, message: str = "API specification not loaded"):
        super().__init__(message)


class ToolNotFoundError(GoLoginMCPError):
    """No operation is registered under the requested tool name."""

    def __init__(self, tool_name: str):
        super().__init__(f'Tool "{tool_name}" not found')
        self.tool_name = tool_name


class ValidationError(GoLoginMCPError):
    """Invocation arguments do not satisfy the operation's declarations."""

    def __init__(self, details: List[str]):
        super().__init__("Validation failed")
        self.details = list(details)


class CallError(GoLoginMCPError):
    """The upstream HTTP call failed before a response was received."""

"""GoLogin MCP Server — tools generated from the GoLogin OpenAPI document."""

import asyncio
import logging
import sys
from typing import Any, Dict, Optional

import structlog
from mcp import types
from mcp.server import Server
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server
from mcp.types import Tool
from pydantic import ValidationError as PydanticValidationError

from . import __version__
from .client import GoLoginClient, GoLoginConfig
from .discovery.dispatcher import Dispatcher
from .discovery.openapi_parser import OpenAPIParser
from .discovery.tool_registry import LoadedCatalog, RegistryConfig, ToolRegistry
from .discovery.validator import Validator
from .errors import GoLoginMCPError, SpecNotLoadedError, ValidationError
from .models.schemas import CallParameters, ValidationErrorPayload
from .utils.auth import AuthConfig

logger = structlog.get_logger(__name__)


class GoLoginMCPServer:
    """MCP server exposing every GoLogin API operation as a tool."""

    def __init__(self, config: Optional[GoLoginConfig] = None):
        self.config = config or GoLoginConfig()
        self.server = Server("gologin-mcp")

        registry_config = RegistryConfig()
        if self.config.excluded_tools is not None:
            registry_config.excluded_tools = frozenset(self.config.excluded_tools)
        self.registry = ToolRegistry(registry_config)

        self.client = GoLoginClient(self.config)
        self.validator = Validator()
        self.dispatcher = Dispatcher(self.client)
        self.catalog: Optional[LoadedCatalog] = None

        self._register_handlers()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def load(self) -> LoadedCatalog:
        """Fetch the OpenAPI document and build the catalog. Errors are fatal."""
        parser = OpenAPIParser(str(self.config.openapi_url), timeout=self.config.timeout)
        document = await parser.fetch_and_parse()
        catalog = self.registry.build(document)
        self.catalog = catalog
        self.dispatcher = Dispatcher(self.client, catalog)
        return catalog

    def list_tools(self) -> list[Tool]:
        if self.catalog is None:
            return []
        return self.catalog.get_mcp_tools()

    # ------------------------------------------------------------------
    # Invocation boundary
    # ------------------------------------------------------------------

    async def handle_call(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]],
        *,
        auth: Optional[AuthConfig] = None,
    ) -> str:
        """Run one tool call. Never raises; failures become text results."""
        try:
            if self.catalog is None:
                raise SpecNotLoadedError()
            entry = self.catalog.lookup(name)
            params = CallParameters.from_arguments(arguments)
            self.validator.check(entry.operation, params)
            return await self.dispatcher.dispatch(
                name, params, auth=auth or self.config.auth_config()
            )
        except PydanticValidationError as e:
            details = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            return self._validation_payload(details)
        except ValidationError as e:
            return self._validation_payload(e.details)
        except GoLoginMCPError as e:
            logger.error("Tool call failed", tool=name, error=str(e))
            return f"Error: {e}"
        except Exception as e:
            logger.error("Unexpected error", error=str(e), tool=name, exc_info=True)
            return f"Error: {e}"

    @staticmethod
    def _validation_payload(details: list[str]) -> str:
        return ValidationErrorPayload(details=details).model_dump_json(indent=2)

    # ------------------------------------------------------------------
    # MCP handlers
    # ------------------------------------------------------------------

    def _register_handlers(self) -> None:
        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            tools = self.list_tools()
            logger.info("list_tools", count=len(tools))
            return tools

        # Arguments are checked by Validator so errors come back as payloads
        @self.server.call_tool(validate_input=False)
        async def call_tool(
            name: str, arguments: Dict[str, Any]
        ) -> list[types.TextContent]:
            logger.info("call_tool", tool=name)
            text = await self.handle_call(name, arguments)
            return [types.TextContent(type="text", text=text)]

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> None:
        await self.load()
        logger.info("Starting GoLogin MCP server", tool_count=self.catalog.tool_count)
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    InitializationOptions(
                        server_name="gologin-mcp",
                        server_version=__version__,
                        capabilities=types.ServerCapabilities(
                            tools=types.ToolsCapability(listChanged=False),
                        ),
                    ),
                )
        finally:
            await self.client.close()


# ------------------------------------------------------------------
# Entry points
# ------------------------------------------------------------------


def configure_logging(level: str = "INFO") -> None:
    # stdout carries the MCP stream, so logs go to stderr
    logging.basicConfig(stream=sys.stderr, level=level.upper(), format="%(message)s")
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


async def async_main() -> None:
    config = GoLoginConfig()
    configure_logging(config.log_level)

    try:
        server = GoLoginMCPServer(config)
        await server.run()
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except Exception as e:
        logger.error("Server error", error=str(e), exc_info=True)
        sys.exit(1)


def main() -> None:
    """Synchronous entry point for console script."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()

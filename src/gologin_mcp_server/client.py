"""GoLogin API client and configuration for the MCP server."""

from typing import List, Mapping, Optional

import httpx
import structlog
from pydantic import AliasChoices, Field, HttpUrl
from pydantic_settings import BaseSettings

from .errors import CallError
from .utils.auth import AuthConfig, AuthMethod

logger = structlog.get_logger(__name__)


class GoLoginConfig(BaseSettings):
    """Configuration for the GoLogin MCP server."""

    openapi_url: HttpUrl = Field(
        default="https://docs-download.gologin.com/openapi.json",
        description="Location of the OpenAPI document, fetched once at startup",
    )
    api_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gologin_api_token", "api_token"),
        description="API token sent in the Authorization header",
    )
    auth_method: AuthMethod = Field(
        default=AuthMethod.HTTP_BEARER,
        description="How the token is placed in the Authorization header",
    )
    timeout: int = Field(default=30, description="Request timeout in seconds")
    user_agent: str = Field(
        default="gologin-mcp", description="User-Agent sent on every API call"
    )
    excluded_tools: Optional[List[str]] = Field(
        default=None,
        description="Tool names hidden from the catalog (None = built-in list)",
    )
    omit_falsy_query_values: bool = Field(
        default=True,
        description="Drop query parameters whose value is falsy (0, '', False)",
    )
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = {
        "env_prefix": "GOLOGIN_",
        "case_sensitive": False,
        "populate_by_name": True,
    }

    def auth_config(self) -> AuthConfig:
        return AuthConfig(token=self.api_token, auth_method=self.auth_method)


class GoLoginClient:
    """Asynchronous HTTP client shared by all tool invocations."""

    def __init__(self, config: Optional[GoLoginConfig] = None):
        self.config = config or GoLoginConfig()
        self.client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_client(self):
        if not self.client:
            self.client = httpx.AsyncClient(timeout=self.config.timeout)

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        content: Optional[str] = None,
    ) -> httpx.Response:
        """Send one request; transport failures become ``CallError``."""
        await self._ensure_client()
        try:
            response = await self.client.request(
                method=method, url=url, headers=headers, content=content
            )
        except httpx.HTTPError as e:
            logger.error("Request error", error=str(e), method=method, url=url)
            raise CallError(f"API call failed: {e}") from e

        logger.info(
            "API request",
            method=method,
            url=url,
            status_code=response.status_code,
        )
        return response

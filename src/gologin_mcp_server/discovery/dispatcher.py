"""Generic HTTP dispatcher for catalog tools."""

from __future__ import annotations

import json
import re
from typing import Any, Mapping
from urllib.parse import quote, urlencode

import httpx
import structlog

from ..client import GoLoginClient
from ..errors import SpecNotLoadedError
from ..models.schemas import CallParameters
from ..utils.auth import AuthConfig
from .parameters import PATH_TOKEN
from .tool_registry import LoadedCatalog

logger = structlog.get_logger(__name__)


class Dispatcher:
    """Execute any catalog tool against the GoLogin API."""

    # Methods that carry a JSON request body
    _BODY_METHODS = {"POST", "PUT", "PATCH"}

    def __init__(self, client: GoLoginClient, catalog: LoadedCatalog | None = None):
        self.client = client
        self.catalog = catalog

    async def dispatch(
        self,
        tool_name: str,
        params: CallParameters,
        *,
        auth: AuthConfig | None = None,
    ) -> str:
        """Build the HTTP request for *tool_name* and return a text report."""
        if self.catalog is None:
            raise SpecNotLoadedError()
        op = self.catalog.lookup(tool_name).operation
        config = self.client.config

        url = self.catalog.base_url + self._substitute_path_params(
            op.path, params.path or {}
        )
        query_string = self._encode_query(
            params.query or {}, omit_falsy=config.omit_falsy_query_values
        )
        if query_string:
            url += f"?{query_string}"

        headers = httpx.Headers(params.headers or {})
        content: str | None = None
        if params.body is not None and op.method in self._BODY_METHODS:
            headers["Content-Type"] = "application/json"
            content = json.dumps(params.body)

        headers["User-Agent"] = config.user_agent
        if auth is not None:
            headers.update(auth.get_headers())

        logger.info("Dispatching", tool=tool_name, method=op.method, url=url)

        response = await self.client.request(
            op.method, url, headers=headers, content=content
        )
        return self._format_report(url, op.method, response)

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    @staticmethod
    def _substitute_path_params(path_template: str, values: Mapping[str, Any]) -> str:
        """Replace ``{param}`` placeholders with percent-encoded values."""

        def _replacer(match: re.Match) -> str:
            key = match.group(1)
            if key in values and values[key] is not None:
                return quote(_to_text(values[key]), safe="")
            return match.group(0)  # leave unreplaced if missing

        return PATH_TOKEN.sub(_replacer, path_template)

    @staticmethod
    def _encode_query(values: Mapping[str, Any], *, omit_falsy: bool = True) -> str:
        """URL-encode query parameters.

        With *omit_falsy* every falsy value is dropped, including ``0`` and
        ``""``; otherwise only ``None`` is.
        """
        items: list[tuple[str, str]] = []
        for key, value in values.items():
            if value is None or (omit_falsy and not value):
                continue
            if isinstance(value, (list, tuple)):
                items.extend((key, _to_text(v)) for v in value)
            else:
                items.append((key, _to_text(value)))
        return urlencode(items)

    # ------------------------------------------------------------------
    # Response formatting
    # ------------------------------------------------------------------

    @staticmethod
    def _read_body(response: httpx.Response) -> Any:
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError:
                return response.text
        return response.text

    @classmethod
    def _format_report(cls, url: str, method: str, response: httpx.Response) -> str:
        body = cls._read_body(response)
        if isinstance(body, str):
            body_text = body
        else:
            body_text = json.dumps(body, indent=2, default=str)
        headers_text = json.dumps(dict(response.headers), indent=2)
        return (
            "API Call Result:\n"
            f"URL: {url}\n"
            f"Method: {method}\n"
            f"Status: {response.status_code} {response.reason_phrase}\n\n"
            f"Response Headers:\n{headers_text}\n\n"
            f"Response Body:\n{body_text}"
        )


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)

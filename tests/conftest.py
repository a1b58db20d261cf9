"""Shared fixtures for tests."""

import json
from pathlib import Path

import pytest

from gologin_mcp_server.discovery.openapi_parser import parse_document
from gologin_mcp_server.discovery.tool_registry import ToolRegistry

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def openapi_spec() -> dict:
    """Load the offline OpenAPI document fixture."""
    with open(FIXTURES_DIR / "openapi_spec.json") as f:
        return json.load(f)


@pytest.fixture
def document(openapi_spec):
    return parse_document(openapi_spec)


@pytest.fixture
def catalog(document):
    return ToolRegistry().build(document)


def make_spec(paths: dict, schemas: dict | None = None) -> dict:
    """Minimal OpenAPI document around *paths*."""
    return {
        "openapi": "3.0.0",
        "servers": [{"url": "https://api.example.com"}],
        "paths": paths,
        "components": {"schemas": schemas or {}},
    }

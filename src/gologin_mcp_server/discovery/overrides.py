"""Catalog overrides for the GoLogin API.

The legacy "create profile" operation (``POST /browser``) is superseded by
the template-based variants and is hidden from the tool list.
"""

EXCLUDED_TOOL_NAMES: frozenset[str] = frozenset(
    {
        "post__browser",
    }
)

"""Pydantic models for invocation arguments and error payloads."""

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field


class CallParameters(BaseModel):
    """Decoded arguments of one tool invocation."""

    path: Optional[Dict[str, Any]] = Field(
        default=None, description="Path parameters for URL substitution"
    )
    query: Optional[Dict[str, Any]] = Field(
        default=None, description="Query parameters"
    )
    body: Optional[Any] = Field(default=None, description="Request body")
    headers: Optional[Dict[str, str]] = Field(
        default=None, description="Additional headers for the request"
    )

    model_config = {"extra": "ignore"}

    @classmethod
    def from_arguments(cls, arguments: Optional[Mapping[str, Any]]) -> "CallParameters":
        """Decode raw tool arguments; ``parameters`` is an alias for ``body``."""
        args = dict(arguments or {})
        if args.get("body") is None and args.get("parameters") is not None:
            args["body"] = args["parameters"]
        return cls.model_validate(args)


class ValidationErrorPayload(BaseModel):
    error: str = Field(default="Validation failed")
    details: List[str] = Field(default_factory=list)

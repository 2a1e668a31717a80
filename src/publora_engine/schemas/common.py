"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads snake_case attributes and speaks camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SuccessResponse(CamelModel):
    success: bool = True


class ErrorResponse(CamelModel):
    """Body of every error response."""

    success: bool = False
    error: str = Field(..., description="Stable machine-readable reason, e.g. PostNotFound.")
    message: str = Field(..., description="Human-readable explanation.")

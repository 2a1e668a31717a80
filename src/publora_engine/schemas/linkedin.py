"""LinkedIn analytics and reaction Pydantic schemas."""
from __future__ import annotations

from pydantic import Field

from .common import CamelModel


class PostStatisticsRequest(CamelModel):
    platform_id: str
    posted_id: str
    query_types: str | list[str] = Field(default="ALL", description='"ALL" or a list of metrics.')


class AccountStatisticsRequest(CamelModel):
    platform_id: str
    query_types: str | list[str] = "ALL"


class ReactionRequest(CamelModel):
    platform_id: str
    posted_id: str
    reaction_type: str = "LIKE"


class RemoveReactionRequest(CamelModel):
    platform_id: str
    posted_id: str


class StatisticsResponse(CamelModel):
    success: bool = True
    platform_id: str
    posted_id: str | None = None
    # Keys are LinkedIn metric names such as IMPRESSION; left as-is.
    metrics: dict[str, int]

"""LinkedIn analytics and reactions proxy.

Queries the member creator analytics endpoints on behalf of a connected
LinkedIn account and normalizes the results into ``{METRIC: count}``.
Failures surface as :class:`UpstreamError` and never touch post state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any
from urllib.parse import quote

import httpx

from publora_engine.core.errors import UpstreamError, ValidationFailed
from publora_engine.core.settings import settings
from publora_engine.platforms.base import ConnectionInfo
from publora_engine.platforms.linkedin import author_urn, linkedin_headers

logger = logging.getLogger(__name__)

METRIC_TYPES = ("IMPRESSION", "MEMBERS_REACHED", "RESHARE", "REACTION", "COMMENT")
REACTION_TYPES = ("LIKE", "PRAISE", "EMPATHY", "INTEREST", "APPRECIATION", "ENTERTAINMENT")
QUERY_ALL = "ALL"

REASON_INVALID_QUERY_TYPE = "InvalidQueryType"
REASON_INVALID_REACTION_TYPE = "InvalidReactionType"


def expand_query_types(value: str | Iterable[str] | None) -> tuple[str, ...]:
    """Normalize ``queryTypes`` to an ordered tuple of metric names.

    ``"ALL"`` (alone or inside a list) expands to every metric.

    Raises:
        ValidationFailed: ``InvalidQueryType`` for empty or unknown names.
    """
    if value is None:
        raise ValidationFailed("queryTypes is required", reason=REASON_INVALID_QUERY_TYPE)
    names = [value] if isinstance(value, str) else list(value)
    if not names:
        raise ValidationFailed("queryTypes must not be empty", reason=REASON_INVALID_QUERY_TYPE)

    requested: list[str] = []
    for raw in names:
        name = str(raw).strip().upper()
        if name == QUERY_ALL:
            return METRIC_TYPES
        if name not in METRIC_TYPES:
            raise ValidationFailed(f"Unknown query type: {raw}", reason=REASON_INVALID_QUERY_TYPE)
        if name not in requested:
            requested.append(name)
    return tuple(requested)


def entity_param(post_urn: str) -> str:
    """Rest.li entity selector for a share or ugcPost URN."""
    kind = "ugc" if ":ugcPost:" in post_urn else "share"
    return f"({kind}:{quote(post_urn, safe='')})"


class LinkedInAnalyticsClient:
    """Thin async client for LinkedIn analytics and reactions."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    async def _send(self, method: str, url: str, connection: ConnectionInfo, **kwargs: Any) -> httpx.Response:
        if connection.is_expired():
            raise UpstreamError("LinkedIn access token has expired", reason="AuthExpired")
        headers = linkedin_headers(connection.access_token)
        try:
            if self._client is not None:
                response = await self._client.request(method, url, headers=headers, **kwargs)
            else:
                timeout = httpx.Timeout(settings.platform_http_timeout_seconds)
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("LinkedIn request %s %s failed: %s", method, url, exc)
            raise UpstreamError(f"LinkedIn request failed: {exc}") from exc

        if not response.is_success:
            logger.warning("LinkedIn responded %s for %s %s", response.status_code, method, url)
            raise UpstreamError(f"LinkedIn responded with {response.status_code}")
        return response

    async def _metric(self, connection: ConnectionInfo, query: str, metric: str) -> tuple[str, int]:
        url = (
            f"{settings.linkedin_api_base_url}/rest/memberCreatorPostAnalytics"
            f"?{query}&queryType={metric}&aggregation=TOTAL"
        )
        response = await self._send("GET", url, connection)
        try:
            elements = response.json().get("elements") or []
        except ValueError as exc:
            raise UpstreamError("LinkedIn returned a non-JSON body") from exc
        count = sum(int(element.get("count", 0)) for element in elements)
        return metric, count

    async def _metrics(self, connection: ConnectionInfo, query: str, metrics: tuple[str, ...]) -> dict[str, int]:
        results = await asyncio.gather(*(self._metric(connection, query, metric) for metric in metrics))
        return dict(results)

    async def post_statistics(
        self,
        connection: ConnectionInfo,
        posted_id: str,
        query_types: str | Iterable[str],
    ) -> dict[str, int]:
        """Return lifetime totals for one published post."""
        metrics = expand_query_types(query_types)
        return await self._metrics(connection, f"q=entity&entity={entity_param(posted_id)}", metrics)

    async def account_statistics(
        self,
        connection: ConnectionInfo,
        query_types: str | Iterable[str],
    ) -> dict[str, int]:
        """Return lifetime totals across all of the member's posts."""
        metrics = expand_query_types(query_types)
        return await self._metrics(connection, "q=me", metrics)

    async def add_reaction(self, connection: ConnectionInfo, posted_id: str, reaction_type: str) -> None:
        reaction = (reaction_type or "LIKE").strip().upper()
        if reaction not in REACTION_TYPES:
            raise ValidationFailed(
                f"Unknown reaction type: {reaction_type}",
                reason=REASON_INVALID_REACTION_TYPE,
            )
        actor = quote(author_urn(connection), safe="")
        await self._send(
            "POST",
            f"{settings.linkedin_api_base_url}/rest/reactions?actor={actor}",
            connection,
            json={"root": posted_id, "reactionType": reaction},
        )

    async def remove_reaction(self, connection: ConnectionInfo, posted_id: str) -> None:
        actor = quote(author_urn(connection), safe="")
        entity = quote(posted_id, safe="")
        await self._send(
            "DELETE",
            f"{settings.linkedin_api_base_url}/rest/reactions/(actor:{actor},entity:{entity})",
            connection,
        )

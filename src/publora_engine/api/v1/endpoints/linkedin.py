"""LinkedIn analytics and reactions proxy endpoints."""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy.orm import Session

from publora_engine.api.v1.dependencies import LinkedInClientDep, PrincipalDep, SessionDep
from publora_engine.core.errors import ValidationFailed
from publora_engine.core.security import Principal
from publora_engine.platforms.base import ConnectionInfo
from publora_engine.platforms.ids import PlatformType, parse_platform_id
from publora_engine.repositories.connection_repo import ConnectionRepository
from publora_engine.schemas.common import SuccessResponse
from publora_engine.schemas.linkedin import (
    AccountStatisticsRequest,
    PostStatisticsRequest,
    ReactionRequest,
    RemoveReactionRequest,
    StatisticsResponse,
)

router = APIRouter(tags=["linkedin"])


def _linkedin_connection(db: Session, principal: Principal, platform_id: str) -> ConnectionInfo:
    try:
        ref = parse_platform_id(platform_id)
    except ValueError as err:
        raise ValidationFailed(str(err), reason="InvalidPlatformId") from err
    if ref.platform is not PlatformType.LINKEDIN:
        raise ValidationFailed("platformId must reference a LinkedIn connection", reason="InvalidPlatformId")
    return ConnectionInfo.from_model(ConnectionRepository(db).get(principal, ref.platform_id))


@router.post("/linkedin-post-statistics", response_model=StatisticsResponse)
async def post_statistics(
    body: PostStatisticsRequest,
    principal: PrincipalDep,
    db: SessionDep,
    client: LinkedInClientDep,
) -> StatisticsResponse:
    connection = _linkedin_connection(db, principal, body.platform_id)
    metrics = await client.post_statistics(connection, body.posted_id, body.query_types)
    return StatisticsResponse(platform_id=body.platform_id, posted_id=body.posted_id, metrics=metrics)


@router.post("/linkedin-account-statistics", response_model=StatisticsResponse)
async def account_statistics(
    body: AccountStatisticsRequest,
    principal: PrincipalDep,
    db: SessionDep,
    client: LinkedInClientDep,
) -> StatisticsResponse:
    connection = _linkedin_connection(db, principal, body.platform_id)
    metrics = await client.account_statistics(connection, body.query_types)
    return StatisticsResponse(platform_id=body.platform_id, metrics=metrics)


@router.post("/linkedin-reactions", response_model=SuccessResponse)
async def add_reaction(
    body: ReactionRequest,
    principal: PrincipalDep,
    db: SessionDep,
    client: LinkedInClientDep,
) -> SuccessResponse:
    connection = _linkedin_connection(db, principal, body.platform_id)
    await client.add_reaction(connection, body.posted_id, body.reaction_type)
    return SuccessResponse()


@router.delete("/linkedin-reactions", response_model=SuccessResponse)
async def remove_reaction(
    body: RemoveReactionRequest,
    principal: PrincipalDep,
    db: SessionDep,
    client: LinkedInClientDep,
) -> SuccessResponse:
    connection = _linkedin_connection(db, principal, body.platform_id)
    await client.remove_reaction(connection, body.posted_id)
    return SuccessResponse()

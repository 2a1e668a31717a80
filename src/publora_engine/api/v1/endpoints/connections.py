"""Connected platform accounts."""

from __future__ import annotations

from fastapi import APIRouter

from publora_engine.api.v1.dependencies import PrincipalDep, SessionDep
from publora_engine.repositories.connection_repo import ConnectionRepository
from publora_engine.schemas.connection import ConnectionListResponse, ConnectionResponse

router = APIRouter(tags=["connections"])


@router.get("/platform-connections", response_model=ConnectionListResponse)
async def list_connections(principal: PrincipalDep, db: SessionDep) -> ConnectionListResponse:
    """List the accounts the caller can publish to; use ``platformId`` in create-post."""
    connections = ConnectionRepository(db).list_for(principal)
    return ConnectionListResponse(
        connections=[ConnectionResponse.model_validate(connection) for connection in connections]
    )

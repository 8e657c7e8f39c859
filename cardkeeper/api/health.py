"""
Liveness and readiness checks.

``/health`` answers whenever the process is up. ``/ready`` also reads from
the card and container tables, so an instance whose database is down or
whose tables were never created is taken out of rotation.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cardkeeper.config import settings
from cardkeeper.db.database import get_session
from cardkeeper.models.db import CardDB, ContainerDB

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class ServiceStatusResponse(BaseModel):
    service: str
    status: str
    inventory_store: str | None = None
    detail: str | None = None


@router.get("/health", response_model=ServiceStatusResponse)
async def health() -> ServiceStatusResponse:
    """Liveness check. Never touches the database."""
    return ServiceStatusResponse(service=settings.app_name, status="alive")


@router.get(
    "/ready",
    response_model=ServiceStatusResponse,
    responses={503: {"model": ServiceStatusResponse}},
)
async def ready(
    response: Response,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ServiceStatusResponse:
    """
    Readiness check.

    Returns 503 with the failing error type in ``detail`` when either
    inventory table cannot be read.
    """
    try:
        await session.execute(select(CardDB.id).limit(1))
        await session.execute(select(ContainerDB.id).limit(1))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Inventory store not reachable: %s", e)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ServiceStatusResponse(
            service=settings.app_name,
            status="unavailable",
            inventory_store="unreachable",
            detail=type(e).__name__,
        )

    return ServiceStatusResponse(
        service=settings.app_name, status="ready", inventory_store="reachable"
    )

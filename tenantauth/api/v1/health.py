"""Health check endpoint with database connectivity check."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from tenantauth.core.config import Settings, get_settings
from tenantauth.core.database import check_db_connected, get_db
from tenantauth.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Return service health status and database connectivity.
    Responds 503 when the database is unreachable so load balancers drain the node.
    """
    cache = getattr(request.app.state, "permission_cache", None)
    connected = check_db_connected(db)
    body = HealthResponse(
        status="ok" if connected else "degraded",
        environment=settings.APP_ENV,
        database="connected" if connected else "disconnected",
        permission_cache_loaded=cache.loaded if cache is not None else None,
    )
    if not connected:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=body.model_dump(),
        )
    return body

"""Health and readiness endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from quiz_engine.core.errors import get_request_id
from quiz_engine.db.session import get_db

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"


class ReadinessResponse(BaseModel):
    status: Literal["ok", "down"]
    db: Literal["ok", "down"]
    message: str | None = None
    request_id: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
)
async def health_check() -> HealthResponse:
    """Process is alive."""
    return HealthResponse(status="ok")


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
)
async def readiness_check(
    request: Request,
    db: Session = Depends(get_db),
) -> ReadinessResponse:
    """Database is reachable."""
    request_id = get_request_id(request)
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        return ReadinessResponse(status="down", db="down", message=str(e), request_id=request_id)
    return ReadinessResponse(status="ok", db="ok", request_id=request_id)

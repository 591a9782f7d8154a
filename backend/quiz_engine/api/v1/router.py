"""API v1 router - includes all v1 endpoints."""

from fastapi import APIRouter

from quiz_engine.api.v1.endpoints import health, quiz_sessions

api_router = APIRouter()

api_router.include_router(health.router, prefix="", tags=["Health"])
api_router.include_router(quiz_sessions.router, prefix="", tags=["Quiz Sessions"])

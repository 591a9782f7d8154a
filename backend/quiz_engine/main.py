"""FastAPI application factory and main entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from quiz_engine import __version__
from quiz_engine.api.v1.router import api_router
from quiz_engine.common.request_id import RequestIDMiddleware
from quiz_engine.core.config import settings
from quiz_engine.core.errors import (
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from quiz_engine.core.logging import setup_logging
from quiz_engine.db.base import Base, import_models
from quiz_engine.db.engine import engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    # Create tables (in production, the schema is managed outside the app)
    if settings.ENV in ("dev", "test"):
        import_models()
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=__version__,
        description="Timed quiz session engine",
        openapi_url="/openapi.json" if settings.ENV != "prod" else None,
        docs_url="/docs" if settings.ENV != "prod" else None,
        redoc_url="/redoc" if settings.ENV != "prod" else None,
        lifespan=lifespan,
    )

    # Order matters - first added is innermost
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "message": settings.PROJECT_NAME,
            "version": __version__,
            "docs_url": "/docs" if settings.ENV != "prod" else None,
        }

    return app


app = create_app()

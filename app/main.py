# app/main.py
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.api import api_router
from app.core.auth import TokenService
from app.core.config import Settings, get_settings
from app.core.database import build_engine, build_session_factory, create_db_and_tables
from app.core.exceptions import AppError, AuthError, StorageError, ValidationError
from app.core.security import CredentialStore

logger = logging.getLogger(__name__)


def _error_body(exc: AppError, settings: Settings) -> dict:
    body = {"detail": exc.detail}
    if isinstance(exc, ValidationError):
        body["errors"] = [error.as_dict() for error in exc.errors]
    if isinstance(exc, StorageError) and settings.is_development and exc.__cause__ is not None:
        body["error"] = repr(exc.__cause__)
    return body


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}")
        headers = None
        if isinstance(exc, AuthError) and exc.status_code == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc, settings),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error = ValidationError.from_pydantic(exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(error, settings),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        detail = exc.detail
        if exc.status_code == status.HTTP_404_NOT_FOUND and detail == "Not Found":
            detail = "Route not found"
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": detail},
            headers=getattr(exc, "headers", None),
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
        content = {"detail": "Internal server error"}
        if settings.is_development:
            content["error"] = str(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Settings, the token service, the credential store and the database engine
    are created here once and kept on ``app.state``; nothing reads them from
    module globals, so tests can build isolated apps.
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Create all tables on startup (migrations live in alembic/)
        await create_db_and_tables(engine)
        logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
        yield
        await engine.dispose()
        logger.info("Database engine disposed")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Authentication", "description": "Registration, login and token checks"},
            {"name": "User Management", "description": "Profile, balance and dashboard"},
            {"name": "transactions", "description": "Income and expense records"},
            {"name": "objectives", "description": "Savings objectives"},
        ],
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.credentials = CredentialStore(rounds=settings.BCRYPT_ROUNDS)
    app.state.tokens = TokenService(
        secret=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )

    # CORS Configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app, settings)

    app.include_router(api_router, prefix="/api/v1")

    # ------------------------------------------------------------
    # HEALTH CHECK ENDPOINT
    # ------------------------------------------------------------
    @app.get("/api/health", tags=["Health"])
    async def health_check():
        return {
            "message": f"{settings.APP_NAME} is running!",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": settings.VERSION,
        }

    return app


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("app.main:create_app", factory=True, host="0.0.0.0", port=port, reload=False)

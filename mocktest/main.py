"""FastAPI entrypoint for the Mock Test Learning Platform."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from mocktest.config import settings
from mocktest.database import create_db_and_tables, engine
from mocktest.errors import (
    ForbiddenError,
    MockTestError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailure,
)
from mocktest.logging_config import setup_logging
from mocktest.routers import attempts as attempts_router_module
from mocktest.routers import auth as auth_router_module
from mocktest.routers import courses as courses_router_module
from mocktest.routers import mock_tests as mock_tests_router_module
from mocktest.seed import seed_sample_data
from mocktest.storage import SqlStorage

setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize database schema and seed sample data."""
    create_db_and_tables()
    if settings.SEED_SAMPLE_DATA:
        with Session(engine) as session:
            seed_sample_data(SqlStorage(session))
    logger.info("%s started (env=%s)", settings.APP_NAME, settings.ENV)
    yield
    logger.info("%s shutting down", settings.APP_NAME)


app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)


def _error_field(loc) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in ("body", "query", "path", "header", "cookie"):
        parts = parts[1:]
    return ".".join(parts) or "body"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return 400 with a field-level error list instead of FastAPI's 422."""
    errors = []
    for error in exc.errors():
        error_type = error.get("type", "")
        field = _error_field(error.get("loc", []))
        if error_type == "missing":
            message = "Field required."
        else:
            message = error.get("msg", "Invalid input")
        errors.append({"field": field, "message": message})
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": errors})


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    logger.info("Validation failed on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"errors": exc.errors}
    )


@app.exception_handler(MockTestError)
async def mocktest_error_handler(request: Request, exc: MockTestError):
    """Map service-layer errors onto HTTP status codes."""
    if isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, UnauthorizedError):
        status_code = status.HTTP_401_UNAUTHORIZED
    elif isinstance(exc, ForbiddenError):
        status_code = status.HTTP_403_FORBIDDEN
    else:
        logger.error("Unhandled application error on %s: %s", request.url.path, exc)
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# Session middleware for simple cookie-based authentication
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SECRET_KEY,
    session_cookie=settings.SESSION_COOKIE,
    max_age=settings.SESSION_MAX_AGE,
    same_site="lax",
)

# Routers
app.include_router(auth_router_module.router, prefix=settings.API_PREFIX, tags=["auth"])
app.include_router(
    courses_router_module.router, prefix=f"{settings.API_PREFIX}/courses", tags=["courses"]
)
app.include_router(
    mock_tests_router_module.router,
    prefix=f"{settings.API_PREFIX}/mock-tests",
    tags=["mock-tests"],
)
app.include_router(
    attempts_router_module.router,
    prefix=f"{settings.API_PREFIX}/test-attempts",
    tags=["test-attempts"],
)


@app.get("/health")
def health():
    return {"status": "ok"}

"""FastAPI application entrypoint. No business logic; only wiring, middleware and error formatting."""

import logging
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tenantauth.api.v1 import router as v1_router
from tenantauth.core.config import settings
from tenantauth.core.database import SessionLocal
from tenantauth.core.errors import AppError
from tenantauth.core.logging import configure_logging
from tenantauth.schemas.envelope import error_response
from tenantauth.services.permission_cache import PermissionCache, session_grant_loader

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Something went wrong"


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    cache: PermissionCache = app.state.permission_cache
    if settings.PERMISSION_CACHE_ENABLED:
        await cache.start()
    try:
        yield
    finally:
        await cache.stop()


app = FastAPI(
    title="tenantauth API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.state.permission_cache = PermissionCache(
    session_grant_loader(SessionLocal),
    interval_seconds=settings.PERMISSION_CACHE_REFRESH_SECONDS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "%s %s -> %s (%.1f ms)",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response


def _user_id(request: Request) -> str | None:
    details = getattr(request.state, "user_details", None)
    return str(details.id) if details is not None else None


@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    headers = None
    if exc.status_code >= 500:
        # Operator-facing detail goes to the log; the client gets a generic message.
        logger.error(
            "API error: %s %s -> %s: %s (user_id=%s)",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
            _user_id(request),
        )
        message = GENERIC_SERVER_ERROR
    else:
        logger.info(
            "Request rejected: %s %s -> %s: %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
        message = exc.message
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field_errors.setdefault(".".join(loc) or "body", []).append(err.get("msg", "Invalid value"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response("Validation Error", field_errors),
    )


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = f"Can't find {request.url.path} on this server!!!"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(GENERIC_SERVER_ERROR),
    )


app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "tenantauth API"}

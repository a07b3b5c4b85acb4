import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from beluva.api.routes import (
    admin,
    furniture,
    health,
    placements,
    recommendations,
    room_images,
    user,
    visualizations,
)
from beluva.config import settings
from beluva.errors import BeluvaError
from beluva.logging import configure_logging
from beluva.providers.service import build_llm_service

configure_logging()

logger = structlog.get_logger()

_HTTP_CODES = {
    400: "validation_error",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "file_too_large",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.llm = build_llm_service(settings.llm_provider, settings)
    logger.info("app_started", environment=settings.environment)
    yield


app = FastAPI(
    title="Beluva API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url=None,
    lifespan=lifespan,
)


def _error_response(request: Request, status: int, message: str, code: str) -> JSONResponse:
    response = JSONResponse(
        status_code=status,
        content={"error": {"message": message, "code": code}},
    )
    response.headers["X-Request-ID"] = getattr(
        request.state, "request_id", request.headers.get("X-Request-ID", "")
    )
    return response


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Attach a unique request ID to every request for log correlation.

    The ID is bound into structlog context vars and echoed in the
    X-Request-ID response header.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(BeluvaError)
async def beluva_error_handler(request: Request, exc: BeluvaError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "request_failed",
        path=request.url.path,
        method=request.method,
        status=exc.status_code,
        code=exc.code,
        error=exc.message,
    )
    return _error_response(request, exc.status_code, exc.message, exc.code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Return the error envelope with 400 for request validation errors.

    FastAPI's default is 422 with {"detail": [...]}.
    """
    messages = []
    for err in exc.errors():
        loc = " -> ".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}")
    return _error_response(request, 400, "; ".join(messages), "validation_error")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes and disallowed methods use the same envelope."""
    code = _HTTP_CODES.get(exc.status_code, "internal_error" if exc.status_code >= 500 else "error")
    return _error_response(request, exc.status_code, str(exc.detail), code)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return the error envelope instead of a bare 500 page."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return _error_response(request, 500, "An unexpected error occurred", "internal_error")


app.include_router(health.router)
app.include_router(room_images.router, prefix="/api")
app.include_router(recommendations.router, prefix="/api")
app.include_router(visualizations.router, prefix="/api")
app.include_router(placements.router, prefix="/api")
app.include_router(furniture.router, prefix="/api")
app.include_router(user.router, prefix="/api")
app.include_router(admin.router, prefix="/api")

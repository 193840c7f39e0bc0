"""Global error handlers: every failure renders as ``{success: false, error, detail}``."""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from wojak.economy.errors import EconomyError

logger = structlog.get_logger()

_HTTP_CODES = {
    400: "BadRequest",
    401: "Unauthorized",
    403: "Forbidden",
    404: "NotFound",
    405: "MethodNotAllowed",
    409: "Conflict",
    429: "RateLimited",
    503: "Unavailable",
}


def error_body(code: str, detail: object, **context: object) -> dict[str, object]:
    return {"success": False, "error": code, "detail": detail, **context}


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(EconomyError)
    async def economy_error_handler(request: Request, exc: EconomyError) -> JSONResponse:
        """Policy rejections are expected outcomes: logged at INFO, never as errors."""
        logger.info(
            "policy_rejection",
            path=request.url.path,
            code=exc.code,
            detail=exc.detail,
            **exc.context(),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, exc.detail, **exc.context()),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(_HTTP_CODES.get(exc.status_code, "HTTPError"), exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=error_body("ValidationError", "Validation error", errors=jsonable_encoder(exc.errors())),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all: store failures and bugs surface as an opaque InternalError."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content=error_body("InternalError", "Internal server error"),
        )

"""
comfin/core/errors.py

Purpose: Exception handlers

- Every error response has the body {error, code, details}
- Domain errors (ComFinError) keep their own status and code
- Framework HTTP errors become HTTP_ERROR, request validation VALIDATION_ERROR
- Anything else is logged with request context and returned as SERVER_ERROR
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Any, Dict, Optional

from comfin.core.config import Settings, settings
from comfin.core.exceptions import ComFinError
from comfin.core.logging import get_logger
from comfin.schemas.response import ErrorResponse

logger = get_logger(__name__)


def error_response(
    status_code: int,
    message: str,
    code: str,
    details: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body = ErrorResponse(error=message, code=code, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def add_exception_handlers(app: FastAPI, config: Optional[Settings] = None):
    """
    Registers exception handlers with the FastAPI app.

    Unhandled errors only reveal their message in development with DEBUG on.
    """
    config = config or settings

    @app.exception_handler(ComFinError)
    async def comfin_exception_handler(request: Request, exc: ComFinError):
        if exc.status_code >= 500:
            logger.error(
                f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
                extra={"method": request.method, "url": str(request.url)}
            )
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")
        return error_response(exc.status_code, exc.message, exc.code, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Unknown routes, wrong methods and other framework-raised errors.
        """
        return error_response(
            exc.status_code,
            str(exc.detail),
            "HTTP_ERROR",
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Malformed request bodies, query strings and path parameters.
        """
        return error_response(
            422,
            "Input validation failed",
            "VALIDATION_ERROR",
            details=jsonable_encoder(exc.errors())
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "method": request.method,
                "url": str(request.url),
                "client": request.client.host if request.client else "unknown"
            },
            exc_info=True
        )

        # Internal details stay out of responses outside local debugging
        message = str(exc) if config.is_development and config.DEBUG else "Server error"
        return error_response(500, message, "SERVER_ERROR")

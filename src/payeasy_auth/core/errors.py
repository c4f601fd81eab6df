"""Error types and their JSON rendering.

Every error leaving the API uses the same envelope::

    {"success": false, "error": {"code": "...", "message": "...", "field": "..."}}
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


class ConfigurationError(RuntimeError):
    """Raised when the process is started with unusable configuration."""


class ApiError(Exception):
    """An error that maps directly onto an HTTP response."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        *,
        field: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.field = field
        self.headers = headers


def error_body(code: str, message: str, field: str | None = None) -> dict[str, Any]:
    """Build the error envelope returned to clients."""
    error: dict[str, Any] = {"code": code, "message": message}
    if field is not None:
        error["field"] = field
    return {"success": False, "error": error}


def error_response(
    status_code: int,
    code: str,
    message: str,
    *,
    field: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_body(code, message, field),
        headers=headers,
    )


def _field_name(loc: tuple[Any, ...]) -> str | None:
    # ("body", "publicKey") -> "publicKey"; ("body",) -> None
    names = [str(part) for part in loc if part != "body"]
    return names[-1] if names else None


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(
        exc.status_code,
        exc.code,
        exc.message,
        field=exc.field,
        headers=exc.headers,
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render body validation failures.

    Unparseable JSON is treated as an unexpected failure (500); missing, empty or
    wrongly typed fields are client input errors (400).
    """
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        logger.warning("Malformed JSON body on %s %s", request.method, request.url.path)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_SERVER_ERROR",
            INTERNAL_ERROR_MESSAGE,
        )

    first = errors[0] if errors else {}
    field = _field_name(tuple(first.get("loc", ())))
    message = f"{field} is required" if field else "Request body is invalid"
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "MISSING_FIELD",
        message,
        field=field,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        INTERNAL_ERROR_MESSAGE,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the envelope-producing handlers to ``app``."""
    app.add_exception_handler(ApiError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)

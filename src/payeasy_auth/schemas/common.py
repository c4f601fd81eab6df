"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Machine-readable error code plus a human message."""

    code: str = Field(..., description="Stable error code, e.g. MISSING_FIELD")
    message: str = Field(..., description="Human-readable description")
    field: str | None = Field(None, description="Offending request field, if any")


class ErrorResponse(BaseModel):
    """Envelope returned for every failed request."""

    success: Literal[False] = False
    error: ErrorDetail


class CsrfTokenResponse(BaseModel):
    """Body of the CSRF token endpoint."""

    token: str = Field(..., description="Token to echo in the X-CSRF-Token header")


class HealthResponse(BaseModel):
    status: str = "ok"

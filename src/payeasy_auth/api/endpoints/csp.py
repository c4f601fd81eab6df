"""Content-Security-Policy violation reports."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Request, Response, status

logger = logging.getLogger(__name__)

router = APIRouter(tags=["security"])


@router.post(
    "/csp-report",
    summary="Receive a CSP violation report",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def receive_csp_report(request: Request) -> Response:
    """Log the browser's violation report. Always answers 204, even for unreadable bodies."""
    raw = await request.body()
    try:
        report = json.loads(raw) if raw else None
    except (ValueError, UnicodeDecodeError):
        report = None

    if report is not None:
        logger.warning("[CSP Report] %s", json.dumps(report, sort_keys=True))
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""Security response headers: CSP, HSTS, X-Frame-Options and friends."""

from __future__ import annotations

import json
from typing import Final

HSTS_MAX_AGE: Final[int] = 31_536_000
REPORT_TO_MAX_AGE: Final[int] = 10_886_400
CSP_REPORT_GROUP: Final[str] = "csp-endpoint"

PERMISSIONS_POLICY: Final[str] = (
    "accelerometer=(), camera=(), geolocation=(), gyroscope=(), "
    "magnetometer=(), microphone=(), payment=(), usb=()"
)


def build_csp(
    *,
    nonce: str | None = None,
    report_uri: str | None = None,
    is_production: bool = False,
) -> str:
    """Build the Content-Security-Policy header value."""
    nonce_directive = f"'nonce-{nonce}'" if nonce else ""
    script_src = ["'self'", nonce_directive, "'strict-dynamic'"]
    style_src = ["'self'", nonce_directive]
    if not is_production:
        script_src.append("'unsafe-eval'")
        style_src.append("'unsafe-inline'")

    directives = [
        "default-src 'self'",
        "script-src " + " ".join(part for part in script_src if part),
        "style-src " + " ".join(part for part in style_src if part),
        "img-src 'self' blob: data: https:",
        "font-src 'self' data:",
        "object-src 'none'",
        "base-uri 'self'",
        "form-action 'self'",
        "frame-ancestors 'none'",
        "block-all-mixed-content",
    ]
    if is_production:
        directives.append("upgrade-insecure-requests")
    if report_uri:
        directives.extend([f"report-uri {report_uri}", f"report-to {CSP_REPORT_GROUP}"])
    return "; ".join(directives)


def build_report_to(report_uri: str) -> str:
    return json.dumps(
        {
            "group": CSP_REPORT_GROUP,
            "max_age": REPORT_TO_MAX_AGE,
            "endpoints": [{"url": report_uri}],
        }
    )


def get_security_headers(
    *,
    nonce: str | None = None,
    report_uri: str | None = None,
    is_production: bool = False,
) -> dict[str, str]:
    """Return header name -> value pairs to attach to every response.

    HSTS is only included in production.
    """
    headers = {
        "Content-Security-Policy": build_csp(
            nonce=nonce, report_uri=report_uri, is_production=is_production
        ),
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
        "Permissions-Policy": PERMISSIONS_POLICY,
    }
    if report_uri:
        headers["Report-To"] = build_report_to(report_uri)
    if is_production:
        headers["Strict-Transport-Security"] = (
            f"max-age={HSTS_MAX_AGE}; includeSubDomains; preload"
        )
    return headers

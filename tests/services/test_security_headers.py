from payeasy_auth.services.headers import build_csp, get_security_headers


def test_development_headers() -> None:
    headers = get_security_headers(nonce="abc")

    assert headers["X-Content-Type-Options"] == "nosniff"
    assert headers["X-Frame-Options"] == "DENY"
    assert headers["X-XSS-Protection"] == "1; mode=block"
    assert "camera=()" in headers["Permissions-Policy"]
    assert "Strict-Transport-Security" not in headers
    assert "Report-To" not in headers

    csp = headers["Content-Security-Policy"]
    assert "script-src 'self' 'nonce-abc' 'strict-dynamic' 'unsafe-eval'" in csp
    assert "'unsafe-inline'" in csp
    assert "upgrade-insecure-requests" not in csp


def test_production_headers() -> None:
    headers = get_security_headers(
        nonce="abc", report_uri="https://payeasy.example/api/csp-report", is_production=True
    )

    assert headers["Strict-Transport-Security"] == "max-age=31536000; includeSubDomains; preload"
    assert '"url": "https://payeasy.example/api/csp-report"' in headers["Report-To"]

    csp = headers["Content-Security-Policy"]
    assert "'unsafe-eval'" not in csp
    assert "'unsafe-inline'" not in csp
    assert "upgrade-insecure-requests" in csp
    assert "report-uri https://payeasy.example/api/csp-report" in csp
    assert "report-to csp-endpoint" in csp


def test_csp_without_nonce() -> None:
    csp = build_csp()
    assert "'nonce-" not in csp
    assert "default-src 'self'" in csp
    assert "frame-ancestors 'none'" in csp

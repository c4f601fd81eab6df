"""Tests for configuration validation."""

import os
import subprocess
import sys

import pytest
from pydantic import ValidationError

from payeasy_auth.core.settings import Settings
from tests.conftest import TEST_SECRET, build_settings


def test_short_secret_is_rejected_at_startup() -> None:
    with pytest.raises(ValidationError, match="at least 32 bytes"):
        Settings(jwt_secret="too-short")


def test_secret_length_counts_bytes() -> None:
    settings = build_settings(jwt_secret="x" * 32)
    assert settings.jwt_secret == "x" * 32


def test_invalid_csrf_store_rejected() -> None:
    with pytest.raises(ValidationError):
        build_settings(csrf_store="memcached")


def test_csrf_store_is_normalized() -> None:
    assert build_settings(csrf_store=" Redis ").csrf_store == "redis"


def test_allowed_origins_combines_app_url_and_extras() -> None:
    settings = build_settings(
        app_url="https://payeasy.example",
        csrf_allowed_origins=["https://admin.payeasy.example", ""],
    )
    assert settings.allowed_origins == [
        "https://payeasy.example",
        "https://admin.payeasy.example",
    ]


def test_production_flag() -> None:
    assert build_settings(environment="production").is_production is True
    assert build_settings(environment="development").is_production is False


def test_default_rate_limits() -> None:
    settings = Settings(jwt_secret=TEST_SECRET)
    assert settings.rate_limits["auth"].limit == 5
    assert settings.rate_limits["auth"].window == 300
    assert settings.rate_limits["api"].limit == 100
    assert settings.rate_limits["api"].window == 60


def test_services_import_without_configured_secret(tmp_path) -> None:
    env = {key: value for key, value in os.environ.items() if key != "JWT_SECRET"}
    env["PYTHONPATH"] = os.pathsep.join(path for path in sys.path if path)
    result = subprocess.run(
        [sys.executable, "-c", "import payeasy_auth.services; print('ok')"],
        cwd=tmp_path,
        env=env,
        capture_output=True,
        text=True,
        check=False,
    )
    assert result.returncode == 0, result.stderr
    assert result.stdout.strip() == "ok"


def test_secret_minimum_is_shared_with_token_service() -> None:
    from payeasy_auth.core import settings as settings_module
    from payeasy_auth.services import tokens

    assert settings_module.MIN_SECRET_BYTES is tokens.MIN_SECRET_BYTES

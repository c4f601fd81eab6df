"""Application settings and configuration.

This module defines all configuration options for the PayEasy auth service.
Settings are loaded from environment variables with sensible defaults. The
session signing secret has no default and is validated when the settings
object is built, so a misconfigured process fails at startup instead of on
the first login.
"""

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from payeasy_auth.services.tokens import MIN_SECRET_BYTES


class RateLimitSetting(BaseModel):
    """Window/limit pair for one rate-limit category."""

    window: int = Field(..., ge=1, description="Window length in seconds")
    limit: int = Field(..., ge=1, description="Requests allowed per window")
    key_prefix: str = Field(..., description="Prefix of the shared-store key")


def _default_rate_limits() -> dict[str, RateLimitSetting]:
    return {
        "global": RateLimitSetting(window=60, limit=1000, key_prefix="rl:global"),
        "auth": RateLimitSetting(window=300, limit=5, key_prefix="rl:auth"),
        "api": RateLimitSetting(window=60, limit=100, key_prefix="rl:api"),
        "payment": RateLimitSetting(window=3600, limit=50, key_prefix="rl:payment"),
    }


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="PayEasy Auth", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    debug: bool = Field(default=False, alias="DEBUG")

    # Session token (JWT) settings
    jwt_secret: str = Field(alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    session_ttl_seconds: int = Field(default=86_400, ge=1, alias="SESSION_TTL_SECONDS")
    session_refresh_threshold_seconds: int = Field(
        default=3_600,
        ge=0,
        alias="SESSION_REFRESH_THRESHOLD_SECONDS",
    )
    session_cookie_name: str = Field(default="auth-token", alias="SESSION_COOKIE_NAME")

    # Wallet challenge settings
    challenge_ttl_ms: int = Field(default=5 * 60 * 1000, ge=1, alias="CHALLENGE_TTL_MS")
    challenge_replay_protection: bool = Field(
        default=False,
        alias="CHALLENGE_REPLAY_PROTECTION",
    )

    # Redis configuration for rate limiting, replay protection and shared CSRF storage
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # CSRF protection
    app_url: str = Field(default="http://localhost:3000", alias="APP_URL")
    csrf_allowed_origins: list[str] = Field(default_factory=list, alias="CSRF_ALLOWED_ORIGINS")
    csrf_exempt_paths: list[str] = Field(
        default=[
            "/health",
            "/api/health",
            "/api/csrf-token",
            "/api/csp-report",
            "/api/auth/login",
            "/api/auth/callback",
        ],
        alias="CSRF_EXEMPT_PATHS",
    )
    csrf_token_ttl_seconds: int = Field(default=3_600, ge=1, alias="CSRF_TOKEN_TTL_SECONDS")
    csrf_sweep_interval_seconds: float = Field(
        default=1_800.0,
        gt=0,
        alias="CSRF_SWEEP_INTERVAL_SECONDS",
    )
    csrf_store: str = Field(default="memory", alias="CSRF_STORE")

    # Protected pages redirect to the login entry point without a session
    protected_paths: list[str] = Field(default=["/dashboard"], alias="PROTECTED_PATHS")
    login_path: str = Field(default="/login", alias="LOGIN_PATH")

    # Rate limiting
    rate_limits: dict[str, RateLimitSetting] = Field(
        default_factory=_default_rate_limits,
        alias="RATE_LIMITS",
    )
    whitelisted_ips: list[str] = Field(default_factory=list, alias="WHITELISTED_IPS")

    # Security headers
    csp_report_path: str | None = Field(default="/api/csp-report", alias="CSP_REPORT_PATH")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Reject signing secrets shorter than 32 bytes."""
        if len(v.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ValueError(f"JWT_SECRET must be at least {MIN_SECRET_BYTES} bytes long")
        return v

    @field_validator("csrf_store")
    @classmethod
    def validate_csrf_store(cls, v: str) -> str:
        normalized = v.strip().lower()
        if normalized not in {"memory", "redis"}:
            raise ValueError("CSRF_STORE must be either 'memory' or 'redis'")
        return normalized

    @property
    def is_production(self) -> bool:
        """Return True when running with production cookie and header policies."""
        return self.environment.strip().lower() == "production"

    @property
    def allowed_origins(self) -> list[str]:
        """Return the origin allowlist used for CSRF origin validation.

        Returns:
            ``APP_URL`` followed by any extra ``CSRF_ALLOWED_ORIGINS``, without blanks
        """
        origins = [self.app_url, *self.csrf_allowed_origins]
        return [origin for origin in origins if origin]


settings = Settings()  # type: ignore[call-arg]

import os
import sys

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _should_load_env_file() -> str | None:
    """Determine if .env should be loaded.

    Local development loads `.env` automatically. Under pytest or in CI the
    process environment is the only source, so tests see deterministic values.
    """
    if any("pytest" in str(x) for x in sys.argv if x):
        return None
    if os.environ.get("CI") in ("1", "true", "True"):
        return None
    return ".env"


class Settings(BaseSettings):
    # Environment configuration
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: 'development', 'staging', 'production' or 'test'",
    )

    DATABASE_URL: str = "sqlite:///./data/moderation.db"

    # Database connection pool settings
    DB_POOL_SIZE: int = Field(
        default=5,
        description="Number of persistent connections in pool",
    )
    DB_MAX_OVERFLOW: int = Field(
        default=10,
        description="Extra connections when pool exhausted",
    )
    DB_POOL_TIMEOUT: int = Field(
        default=30,
        description="Seconds to wait for connection from pool",
    )
    DB_POOL_RECYCLE: int = Field(
        default=1800,
        description="Recycle connections after N seconds (30 min default)",
    )

    # Automated moderation (detection engine + preventive auto-hide)
    AUTOMATED_MODERATION_AUTO_HIDE_ENABLED: bool = Field(
        default=False,
        description="Allow the detection engine to hide content without human review",
    )
    AUTOMATED_MODERATION_AUTO_HIDE_ACTOR_ID: str = Field(
        default="",
        description="User ID recorded as the actor of automated hides (system account)",
    )
    AUTOMATED_MODERATION_AUTO_HIDE_MIN_SEVERITY: str = Field(
        default="critical",
        description="Minimum severity for auto-hide: none, low, medium, high, critical",
    )
    AUTOMATED_MODERATION_AUTO_HIDE_ALLOWED_RULES: str = Field(
        default="spam,suspicious_link,mass_creation",
        description="Rules allowed to trigger auto-hide (comma-separated in env var)",
    )

    @field_validator("AUTOMATED_MODERATION_AUTO_HIDE_ENABLED", mode="before")
    @classmethod
    def parse_auto_hide_enabled(cls, v: object) -> bool:
        """Only explicit 'true' / '1' switch auto-hide on."""
        if isinstance(v, str):
            return v.strip().lower() in ("true", "1")
        return bool(v)

    model_config = SettingsConfigDict(
        env_file=_should_load_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


def get_settings() -> Settings:
    """Get the settings instance (for dependency injection)."""
    return settings

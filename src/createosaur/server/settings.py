"""Configuration for the anonymous trial server.

Values load from environment variables with the ``CREATEOSAUR_`` prefix,
then a ``.env`` file, then the defaults below. The admin Stability key is
read from ``ADMIN_STABILITY_API_KEY`` without the prefix.

Example .env file:
    ADMIN_STABILITY_API_KEY=sk-...
    CREATEOSAUR_DATABASE_PATH=data/anonymous_usage.db
    CREATEOSAUR_RATE_LIMIT_REQUESTS=5
"""

from pathlib import Path

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseSettings):
    """Settings for ``POST /api/anonymous-generate``.

    The admin key is a SecretStr so it never shows up in a repr or a log
    line.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CREATEOSAUR_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    admin_stability_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "ADMIN_STABILITY_API_KEY",
            "CREATEOSAUR_ADMIN_STABILITY_API_KEY",
            "admin_stability_api_key",
        ),
        description="Stability AI key used for every anonymous generation",
    )
    stability_base_url: str | None = Field(
        default=None,
        description="Override for the Stability API base URL",
    )
    model: str = Field(
        default="stable-diffusion-v1-6",
        description="Stability model used for trial generations",
    )

    # Generation defaults
    default_width: int = Field(default=768, ge=64, le=2048)
    default_height: int = Field(default=768, ge=64, le=2048)
    default_steps: int = Field(default=15, ge=1, le=150)
    default_guidance: float = Field(default=7.5, ge=0.0, le=35.0)
    default_negative_prompt: str = "blurry, low quality, distorted, deformed"

    # Trial accounting
    database_path: Path = Field(
        default=Path("data/anonymous_usage.db"),
        description="SQLite file holding the authoritative trial counts",
    )
    trial_limit: int = Field(default=3, ge=1)
    quota_window_days: int = Field(
        default=30,
        ge=1,
        description="Length of one quota window; counts reset per window",
    )

    # Rate limiting, keyed by client IP and fingerprint
    rate_limit_requests: int = Field(default=5, ge=1)
    rate_limit_window_seconds: int = Field(default=3600, ge=1)

    request_timeout: float = Field(default=120.0, gt=0)

    server_host: str = "127.0.0.1"
    server_port: int = Field(default=8000, ge=1, le=65535)

    @property
    def is_configured(self) -> bool:
        return self.admin_stability_api_key is not None and bool(
            self.admin_stability_api_key.get_secret_value()
        )

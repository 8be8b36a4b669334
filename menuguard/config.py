"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Centralised settings — no hardcoded values anywhere else."""

    # Database
    database_url: str = Field(
        "sqlite+aiosqlite:///./menuguard.db", env="DATABASE_URL"
    )

    # Google AI: an empty key means the classification service is
    # unavailable and every AI-backed feature degrades to "no signal".
    google_api_key: str = Field("", env="GOOGLE_API_KEY")
    gemini_model: str = Field("gemini-2.5-flash", env="GEMINI_MODEL")
    gemini_fallback_model: str = Field("gemma-3-12b-it", env="GEMINI_FALLBACK_MODEL")

    # Security
    service_token: str = Field(..., env="SERVICE_TOKEN")
    allowed_origins: str = Field(
        "http://localhost:5173",
        env="ALLOWED_ORIGINS",
    )

    # Customer menu addressing: {public_origin}/?qr={qr_code}
    public_origin: str = Field("http://localhost:5173", env="PUBLIC_ORIGIN")

    # Fuzzy name matching acceptance threshold (0–100)
    match_threshold: int = Field(60, env="MATCH_THRESHOLD")

    # App
    app_env: str = Field("development", env="APP_ENV")
    log_level: str = Field("INFO", env="LOG_LEVEL")

    # Derived
    @property
    def allowed_origins_list(self) -> list[str]:
        """Return ALLOWED_ORIGINS as a list."""
        return [o.strip() for o in self.allowed_origins.split(",")]

    @property
    def ai_configured(self) -> bool:
        """True when a Google API key is present."""
        return bool(self.google_api_key.strip())

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()


settings = get_settings()

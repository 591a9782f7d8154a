"""Application settings and configuration."""

from typing import Literal

from pydantic import Field, model_validator  # type: ignore
from pydantic_settings import BaseSettings, SettingsConfigDict  # type: ignore

DEFAULT_DATABASE_URL = "sqlite:///./quiz_sessions.db"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ENV: Literal["dev", "staging", "prod", "test"] = Field(default="dev")
    PROJECT_NAME: str = Field(default="Quiz Session Engine")

    # API
    API_PREFIX: str = Field(default="/v1")

    # Database
    DATABASE_URL: str = Field(default=DEFAULT_DATABASE_URL)
    DB_ECHO: bool = Field(default=False)  # SQL statement logging

    # CORS - Accept string or list, will be normalized to list
    CORS_ORIGINS: str | list[str] = Field(default="http://localhost:3000")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")

    # Sessions
    SESSION_TOKEN_BYTES: int = Field(default=32, ge=16)  # 32 bytes -> 64 hex chars
    MAX_EXTENSION_MINUTES: int = Field(default=240, ge=1)

    # Sweep job
    SWEEP_BATCH_SIZE: int = Field(default=200, ge=1)

    @model_validator(mode="before")
    @classmethod
    def parse_cors_origins(cls, data):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(data, dict) and isinstance(data.get("CORS_ORIGINS"), str):
            data["CORS_ORIGINS"] = [
                origin.strip() for origin in data["CORS_ORIGINS"].split(",") if origin.strip()
            ]
        return data

    @model_validator(mode="after")
    def check_production(self):
        """Fail fast in production if the database is left at its dev default."""
        if isinstance(self.CORS_ORIGINS, str):
            object.__setattr__(
                self,
                "CORS_ORIGINS",
                [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()],
            )
        if self.ENV == "prod":
            if self.DATABASE_URL == DEFAULT_DATABASE_URL or self.DATABASE_URL.startswith("sqlite"):
                raise ValueError("DATABASE_URL must point at a server database in production")
        return self


# Global settings instance
settings = Settings()

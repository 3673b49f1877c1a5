"""Application configuration using pydantic-settings."""

from decimal import Decimal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite:///./ledger.db"

    # Statement uploads are written here until the import is processed
    STATEMENT_UPLOAD_DIR: str = "./statement_uploads"

    # Ledger behaviour
    INVESTMENT_CATEGORY: str = "Investment Accounts"
    BALANCE_TOLERANCE: Decimal = Decimal("0.01")

    # CORS origins for the frontend (comma-separated)
    CORS_ORIGINS: str = "http://localhost:5173"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    @field_validator("BALANCE_TOLERANCE")
    @classmethod
    def validate_tolerance(cls, v: Decimal) -> Decimal:
        """Tolerance absorbs rounding only; it must be small and non-negative."""
        if v < 0 or v >= 1:
            raise ValueError(f"BALANCE_TOLERANCE must be in [0, 1), got {v}")
        return v

    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()

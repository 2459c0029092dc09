"""Application configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Database
    database_url: str = "sqlite:///./activity_ledger.db"

    # Reporting currency for portfolio-level totals
    base_currency: str = "SGD"

    # Rate-to-base used when a statement has no same-day forex trade for a currency
    default_fx_rates: dict[str, float] = {
        "USD": 1.27,
        "HKD": 0.165,
        "JPY": 0.0082,
    }

    # Application
    log_level: str = "INFO"
    debug: bool = True

    # CORS
    allowed_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )


settings = Settings()

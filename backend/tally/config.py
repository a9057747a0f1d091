"""
Application configuration using Pydantic settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_name: str = "Tally"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./data/tally.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Reporting
    supported_currencies: str = "USD,NGN"  # comma-separated, order is display order
    export_max_rows: int = 5000
    trend_default_months: int = 6
    trend_max_months: int = 24
    top_categories_limit: int = 5
    category_palette_size: int = 8

    # Transaction listing
    list_default_limit: int = 20
    list_max_limit: int = 100

    # Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    frontend_url: str = "http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def currencies(self) -> tuple[str, ...]:
        """Supported currency codes, upper-cased, without duplicates."""
        seen: list[str] = []
        for code in self.supported_currencies.split(","):
            code = code.strip().upper()
            if code and code not in seen:
                seen.append(code)
        return tuple(seen)


# Global settings instance
settings = Settings()

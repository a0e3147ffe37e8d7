"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./agriloan.db"

    # External Services
    advice_api_base: str = "http://localhost:8003"
    advice_timeout_seconds: float = 15.0

    # Service
    service_name: str = "agriloan-gateway"
    log_level: str = "INFO"

    # Loans
    due_soon_window_days: int = 7  # Farmer dashboard reminder window

    # Display
    currency_symbol: str = "₦"


settings = Settings()

"""Application configuration from environment variables."""

from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "Polibook"
    debug: bool = True
    secret_key: str = "dev-secret-change-in-production"
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql+asyncpg://polibook:polibook@db:5432/polibook"
    database_echo: bool = False

    # Auth (tokens are issued by the identity service, we only verify them)
    access_token_expire_minutes: int = 60
    jwt_algorithm: str = "HS256"

    # Booking rules
    timezone: str = "Europe/Madrid"  # wall-clock zone of every venue
    opening_hour: int = 8
    last_start_hour: int = 22
    cancellation_cutoff_minutes: int = 60
    child_care_surcharge: Decimal = Decimal("5.00")

    # Notifications: "log" or "smtp"
    notification_backend: str = "log"
    smtp_host: str = "localhost"
    smtp_port: int = 1025
    smtp_from: str = "reservas@polibook.es"

    model_config = {"env_prefix": "PB_", "env_file": ".env", "extra": "ignore"}


settings = Settings()

"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── PostgreSQL ─────────────────────────────────────────────────────────
    postgres_host: str = "postgres"
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_password: str = ""
    postgres_database: str = "petfinder"
    # Full SQLAlchemy URL; takes precedence over the postgres_* fields
    database_url: Optional[str] = None

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_database}"
        )

    # ── Places ─────────────────────────────────────────────────────────────
    default_radius_km: float = 5.0       # used when ?radius is missing or 0

    # ── Client toolkit ─────────────────────────────────────────────────────
    api_base_url: str = "http://localhost:8000/api"
    api_timeout: float = 5.0
    search_debounce_ms: int = 300
    # Stand-in for authentication: the acting user of the demo client
    demo_user_id: int = 1

    # ── Observability ──────────────────────────────────────────────────────
    otel_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "petfinder-api"
    environment: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()

"""Application configuration using pydantic-settings."""
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Indonesian Regions Fuzzy Search API"
    LOG_LEVEL: str = "INFO"

    # HTTP server
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Region store (written by `main.py ingest`, opened read-only by the API)
    DB_PATH: str = "data/regions.db"

    # Raw sources for ingestion (CSV or the upstream MySQL dumps)
    REGIONS_SOURCE: str = "data/wilayah.sql"
    POSTAL_SOURCE: str = "data/wilayah_kodepos.sql"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

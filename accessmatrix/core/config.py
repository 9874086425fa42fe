from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # App
    app_name: str = "Household Access Matrix"
    debug: bool = False

    # CORS
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # Database
    database_url: str = "sqlite:///./accessmatrix.db"

    # Policy store
    store_backend: str = "sql"  # "sql" or "memory"
    store_timeout_seconds: float = 5.0
    store_retry_attempts: int = 3
    store_retry_base_delay: float = 0.1  # seconds
    store_retry_max_delay: float = 2.0  # seconds

    # Feature catalog (built-in catalog when unset)
    catalog_path: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_dir: str = "./logs"
    file_logging: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"  # Allow extra env vars without raising validation errors
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()

# backend/stockroom/core/config.py

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_env: str = "dev"

    database_url: str = "sqlite:///./stockroom.db"
    auto_create_tables: bool = True

    # tokens come from the external auth provider; we only verify them
    jwt_secret_key: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 10080

    # bulk + stock mutation limits
    max_batch_size: int = 100
    write_retries: int = 3
    max_import_bytes: int = 10 * 1024 * 1024

    # comma-separated allowlist, e.g. "https://app.example.com,http://localhost:3000"
    cors_origins: str = "http://localhost:3000"

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def allow_origins(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # --- Core ---
    APP_NAME: str = "tai-ledger"
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # Storage: "memory" or "sql"
    LEDGER_BACKEND: str = "memory"
    DATABASE_URL: str = "sqlite+pysqlite:///./local.db"

    # tai id / referral code generation
    ID_GENERATION_ATTEMPTS: int = 5

    # Admin bootstrap (tools/create_admin.py)
    ADMIN_EMAIL: str | None = None
    ADMIN_PASSWORD: str | None = None
    ADMIN_NAME: str | None = None


@lru_cache
def get_settings() -> Settings:
    return Settings()

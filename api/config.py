"""Service configuration from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+asyncpg://qrmenu:qrmenu@db:5432/qrmenu"
    STORAGE_BACKEND: str = "sql"  # sql | memory
    SQL_ECHO: bool = False
    INIT_DB_ON_START: bool = False

    JWT_SECRET: str = "changeme"
    ACCESS_TOKEN_EXPIRE_MIN: int = 1440  # 24h

    # Razorpay
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_WEBHOOK_SECRET: str = ""
    PAY_CURRENCY: str = "INR"

    PUBLIC_BASE_URL: str = "http://localhost:8000"

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()

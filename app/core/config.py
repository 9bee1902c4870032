from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "Leila API Gateway"
    APP_VERSION: str = "1.0.0"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    STORE_PROVIDER: str = "memory"  # "memory" | "json"
    DATA_DIR: str = "./data"

    # Raw keys seeded into the registry at startup. Only their hashes are kept.
    API_KEYS: list[str] = []
    ADMIN_TOKEN: str | None = None

    ACTIVE_CONTRACTOR_IDS: list[int] = []
    PENDING_CONTRACTOR_IDS: list[int] = []

    CRM_WEBHOOK_URL: str | None = None
    NOTIFY_TIMEOUT_SECONDS: float = 10.0
    NOTIFY_MAX_RETRIES: int = 3
    NOTIFY_BACKOFF_SECONDS: float = 1.0

    # Celery broker for notification delivery, e.g. "redis://localhost:6379/0".
    # Unset: the API process delivers on its own dispatcher thread.
    CELERY_BROKER_URL: str | None = None


settings = Settings()

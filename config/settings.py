"""
Centralized configuration using pydantic-settings.

How it works:
- Reads environment variables automatically (e.g., SMTP_HOST env var → Settings.SMTP_HOST)
- Falls back to defaults defined here if env vars are not set
- Can also read from a .env file in the project root

Every entry point imports `settings` from here. Library code (the recipient
resolver, the dispatch engine) never does: it receives plain values built from
settings by the wiring code, so tests can construct it with anything they like.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── PostgreSQL ──────────────────────────────────────────────
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "mailqueue"
    POSTGRES_PASSWORD: str = "mailqueue"
    POSTGRES_DB: str = "mailqueue"

    # ── Redis (runtime recipient settings) ──────────────────────
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    # ── Worker ──────────────────────────────────────────────────
    WORKER_POOL_SIZE: int = 4          # threads processing claimed jobs of one batch
    DISPATCH_INTERVAL: float = 60.0    # seconds between scheduled dispatch cycles
    DISPATCH_BATCH_SIZE: int = 10

    # ── Claims ──────────────────────────────────────────────────
    CLAIM_TIMEOUT_SECONDS: int = 900   # 0 disables reclaiming of stuck PROCESSING jobs

    # ── Jobs ────────────────────────────────────────────────────
    DEFAULT_PRIORITY: int = 5

    # ── SMTP ────────────────────────────────────────────────────
    SMTP_HOST: str = ""                # empty → mails are logged, not sent
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_START_TLS: bool = True
    SMTP_TIMEOUT: float = 10.0
    MAIL_FROM: str = "system@company.com"

    # ── Recipients (environment layer) ──────────────────────────
    REPORT_RECIPIENTS_PLANNED: str = ""   # comma separated
    REPORT_RECIPIENTS_ACTUAL: str = ""
    REPORT_RECIPIENTS_ALL: str = ""
    FALLBACK_RECIPIENT: str = "hr@company.com"
    HR_RECIPIENTS: str = "hr@company.com,manager@company.com"

    # ── App ─────────────────────────────────────────────────────
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self) -> str:
        """Async connection string for FastAPI (uses asyncpg driver)."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def sync_database_url(self) -> str:
        """Sync connection string for worker threads (uses psycopg2 driver)."""
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton — import this everywhere
settings = Settings()

"""Configuration and environment settings for the Finance Tracker API."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for the Finance Tracker API."""

    groq_api_key: str
    llm_model: str = "llama-3.3-70b-versatile"
    llm_temperature: float = 0.1
    llm_max_completion_tokens: int = 8192
    llm_top_p: float = 0.95

    database_url: str = "sqlite:///finance_tracker.db"

    s3_endpoint_url: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: str | None = None
    s3_bucket: str = "finance-tracker"
    s3_url_expiry_seconds: int = 7 * 24 * 3600

    pdftotext_cmd: str = "pdftotext"
    ocr_languages: str = "spa+eng"
    extraction_timeout_seconds: int = 120

    inline_worker: bool = True
    worker_poll_seconds: float = 2.0
    stale_job_seconds: int = 30 * 60
    recovery_interval_seconds: float = 60.0

    identity_header: str = "X-User-Id"
    log_dir: str = "logs"
    server_host: str = "127.0.0.1"
    server_port: int = 8000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


def get_settings() -> "Settings":
    """Return an instance of the application settings."""
    return Settings()

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "reports"
    db_username: str = "reports"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_pool_timeout_seconds: float = 10.0

    max_job_attempts: int = 3
    job_poll_interval_seconds: int = 5

    notification_channels: str = "database"
    notification_webhook_url: str = ""
    notification_webhook_token: str = ""
    notification_timeout_seconds: int = 10

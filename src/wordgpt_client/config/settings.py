"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Provider selection
    default_provider: str = "openai"

    # Secret store
    secret_store_backend: str = "json"  # "json" | "dynamodb" | "memory"
    secret_store_path: str = "wordgpt_secrets.json"
    secret_store_key: str = "wordGptPlusApiConfig"
    dynamodb_table_name: str = "wordgpt-secrets"
    aws_region: str = "us-east-1"
    kms_key_id: str = ""  # Empty = keys persisted in plaintext

    # Transport
    request_timeout: float = 60.0
    connect_timeout: float = 10.0

    # Retry and queueing
    max_retries: int = 3
    retry_initial_delay: float = 1.0  # seconds
    retry_backoff_factor: float = 2.0
    queue_poll_interval: float = 5.0  # seconds between rate window rechecks
    queue_timeout: float = 0.0  # 0 = queued requests wait indefinitely

    # HTTP bridge authentication (comma-separated)
    bridge_api_keys: str = "dev-key-1"

    # Logging
    log_level: str = "INFO"
    log_file: str = ""  # Empty = stdout only

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def bridge_keys_list(self) -> list[str]:
        return [k.strip() for k in self.bridge_api_keys.split(",") if k.strip()]

    @property
    def queue_timeout_or_none(self) -> float | None:
        return self.queue_timeout if self.queue_timeout > 0 else None


@lru_cache
def get_settings() -> Settings:
    return Settings()

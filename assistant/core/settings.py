from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Personal Assistant Bot"
    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_log_level: str = Field(default="INFO")
    default_timezone: str = Field(default="Asia/Kolkata")

    telegram_bot_token: str = Field(default="test-token")
    telegram_webhook_secret: str = Field(default="dev-secret")
    telegram_webhook_path: str = Field(default="/webhook/telegram")
    webhook_max_update_age_seconds: int = Field(default=300)

    database_url: str = Field(default="postgresql+psycopg://postgres:postgres@db:5432/assistant")

    openai_api_key: str = Field(default="replace_me")
    openai_model: str = Field(default="gpt-4.1-mini")
    openai_codex_model: str = Field(default="gpt-5.2-codex")
    openai_timeout_seconds: float = Field(default=60.0)
    llm_circuit_failure_threshold: int = Field(default=3)
    llm_circuit_open_seconds: int = Field(default=60)
    llm_min_confidence: float = Field(default=0.5)
    chat_rate_limit_requests: int = Field(default=5)
    chat_rate_limit_window_seconds: int = Field(default=60)

    github_api_base_url: str = Field(default="https://api.github.com")
    github_web_base_url: str = Field(default="https://github.com")
    github_oauth_client_id: str | None = Field(default=None)
    github_oauth_client_secret: str | None = Field(default=None)
    github_oauth_redirect_uri: str | None = Field(default=None)
    github_timeout_seconds: float = Field(default=20.0)
    github_token_encryption_key: str = Field(default="")

    pending_action_ttl_minutes: int = Field(default=30)
    oauth_state_ttl_minutes: int = Field(default=10)
    max_edit_files: int = Field(default=5)

    scheduler_interval_seconds: int = Field(default=30)
    scheduler_batch_size: int = Field(default=100)

    conversation_history_size: int = Field(default=10)
    conversation_history_ttl_seconds: int = Field(default=3600)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

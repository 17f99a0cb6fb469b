"""Runtime settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SAGE_", extra="ignore")

    app_name: str = "sagecore"
    env: str = "dev"
    log_level: str = "info"
    log_dir: str = "logs"

    api_base_url: str = "https://api.anthropic.com/v1/messages"
    api_version: str = "2023-06-01"
    # credential header; the API takes the raw key here rather than an Authorization bearer
    api_key_header: str = "x-api-key"
    default_model: str = "claude-opus-4-6"
    default_max_tokens: int = Field(default=1024, gt=0)

    request_timeout_seconds: float = 30.0
    stream_timeout_seconds: float = 300.0
    connect_timeout_seconds: float = 10.0
    max_retries: int = Field(default=1, ge=0)
    # failed stream bodies are drained only up to this many bytes for diagnostics
    max_error_body_bytes: int = 16_384
    http_max_connections: int = 20
    http_max_keepalive_connections: int = 5

    credential_backend: str = "env"  # memory | env | file
    credential_env_var: str = "ANTHROPIC_API_KEY"
    credential_file_path: str = "~/.sage/credentials.json"
    credential_key_name: str = "anthropic_api_key"

    pricing_rules_path: str = "sagecore/config/pricing.yaml"

    schedule_start_hour: int = Field(default=7, ge=0, le=23)
    schedule_end_hour: int = Field(default=22, ge=1, le=24)
    default_session_minutes: int = 30

    title_max_tokens: int = 30
    title_max_chars: int = 80


settings = Settings()

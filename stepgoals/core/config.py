from __future__ import annotations

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STEPGOALS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # env: dev|stage|prod
    APP_ENV: str = "dev"

    # REST API
    API_BASE_URL: str = "http://localhost:3000/api"
    API_TIMEOUT_SECONDS: float = 30.0

    # Realtime channel
    WS_MAX_RECONNECT_ATTEMPTS: int = 3
    WS_BASE_RECONNECT_DELAY_SECONDS: float = 1.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool | None = None

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        allowed = {"dev", "stage", "prod"}
        if value not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}, got '{value}'")
        return value

    @field_validator("API_BASE_URL")
    @classmethod
    def validate_base_url(cls, value: str, info: ValidationInfo) -> str:
        """Plain http is only acceptable against a dev backend."""
        value = value.rstrip("/")
        env = info.data.get("APP_ENV", "dev")
        if env != "dev" and not value.startswith("https://"):
            raise ValueError(f"API_BASE_URL must use https in {env} environment, got '{value}'")
        return value

    @field_validator("API_TIMEOUT_SECONDS", "WS_BASE_RECONNECT_DELAY_SECONDS")
    @classmethod
    def validate_positive(cls, value: float, info: ValidationInfo) -> float:
        if value <= 0:
            raise ValueError(f"{info.field_name} must be positive")
        return value

    @field_validator("WS_MAX_RECONNECT_ATTEMPTS")
    @classmethod
    def validate_attempts(cls, value: int) -> int:
        if value < 0:
            raise ValueError("WS_MAX_RECONNECT_ATTEMPTS must not be negative")
        return value

    @property
    def json_logs(self) -> bool:
        if self.LOG_JSON is not None:
            return self.LOG_JSON
        return self.APP_ENV != "dev"


settings = Settings()

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """App configuration loaded from env and .env file."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # GitHub REST API
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_ACCEPT: str = "application/vnd.github.v3+json"
    GITHUB_PER_PAGE: int = 100
    REQUEST_TIMEOUT_S: float = 30.0

    # Workflow that receives the environment structure
    DISPATCH_WORKFLOW: str = "update-environment"  # workflow name or file stem
    DISPATCH_REF: str = "main"

    # Политика хранилища окружений
    STORE_ALLOW_BLANK_FIELDS: bool = True
    STORE_MIN_ENTRIES: int = 0  # 0 or 1

    # Сохранённые шаблоны
    TEMPLATES_PATH: str = "./templates.json"

    # Логирование
    LOG_LEVEL: str = "INFO"  # DEBUG/INFO/WARNING/ERROR
    GITHUB_LOG_LEVEL: str = "WARNING"  # уровень логов HTTP-вызовов к GitHub

    @field_validator("STORE_MIN_ENTRIES")
    @classmethod
    def _check_min_entries(cls, v: int) -> int:
        if v not in (0, 1):
            raise ValueError("STORE_MIN_ENTRIES must be 0 or 1")
        return v


settings = Settings()

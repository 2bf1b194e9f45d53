"""Конфигурация сервиса из переменных окружения."""
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

RecoveryMode = Literal["recheck", "error", "keep"]


class Settings(BaseSettings):
    """Настройки сервиса, парсятся из env или .env файла."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Состояние
    state_file: Path = Path("state/storage.json")
    state_restore_strict: bool = True       # битый снапшот → отказ стартовать
    recovery_mode: RecoveryMode = "recheck"  # что делать с processing после рестарта
    snapshot_interval_seconds: float = Field(default=1.0, gt=0)

    # Проверка ссылок
    probe_timeout_seconds: float = Field(default=10.0, gt=0)
    probe_user_agent: str = "Link-Checker/1.0"
    probe_max_keepalive_connections: int = Field(default=100, ge=0)
    probe_keepalive_expiry_seconds: float = Field(default=30.0, ge=0)
    max_concurrent_probes: int = Field(default=0, ge=0)  # 0: без ограничения

    # API
    host: str = "0.0.0.0"
    port: int = Field(
        default=8080,
        validation_alias=AliasChoices("LINK_CHECKER_PORT", "PORT"),
    )
    shutdown_grace_seconds: int = Field(default=30, ge=0)

    log_level: str = "INFO"


def load_settings() -> Settings:
    """Создать Settings из переменных окружения (.env файла)."""
    return Settings.model_validate({})

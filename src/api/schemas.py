"""Pydantic-схемы для API проверки ссылок."""
from pydantic import BaseModel, Field, field_validator


class CheckRequest(BaseModel):
    """Запрос на проверку батча ссылок."""

    links: list[str] = Field(min_length=1)

    @field_validator("links")
    @classmethod
    def clean_links(cls, v: list[str]) -> list[str]:
        """Выкинуть пустые строки и точные дубликаты, сохранив порядок.

        Сами ссылки не нормализуются, это ключи задачи как есть.
        """
        cleaned = list(dict.fromkeys(link for link in v if link.strip()))
        if not cleaned:
            raise ValueError("links must not be empty")
        return cleaned


class CheckResponse(BaseModel):
    """Ответ на POST /api/check: все ссылки в processing."""

    links: dict[str, str]
    links_num: int  # id созданной задачи


class StatusResponse(BaseModel):
    """Ответ на GET /api/status/{id}."""

    links: dict[str, str]  # available | not available | processing | error
    links_num: int


class ReportRequest(BaseModel):
    """Запрос PDF-отчёта по списку id задач."""

    links_list: list[int] = Field(min_length=1)


class HealthResponse(BaseModel):
    """Ответ healthcheck."""

    status: str
    tasks_total: int
    active_checks: int

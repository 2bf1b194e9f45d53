"""Pydantic-модели задачи проверки ссылок и снапшота состояния."""
from collections import Counter
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class LinkStatus(StrEnum):
    """Статус одной ссылки внутри задачи."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    PROCESSING = "processing"
    ERROR = "error"

    @property
    def display(self) -> str:
        """Формулировка статуса для ответа API."""
        if self is LinkStatus.UNAVAILABLE:
            return "not available"
        return self.value


class Task(BaseModel):
    """Задача: один батч ссылок на проверку."""

    id: int
    links: dict[str, LinkStatus]
    created_at: datetime
    updated_at: datetime

    @property
    def is_finished(self) -> bool:
        return LinkStatus.PROCESSING not in self.links.values()

    def pending_links(self) -> list[str]:
        """Ссылки, которые ещё в processing."""
        return [link for link, status in self.links.items() if status is LinkStatus.PROCESSING]

    def status_counts(self) -> dict[LinkStatus, int]:
        counts = Counter(self.links.values())
        return {status: counts.get(status, 0) for status in LinkStatus}


class StateSnapshot(BaseModel):
    """Содержимое файла состояния: все задачи + счётчик id."""

    tasks: dict[int, Task] = {}
    next_id: int = 1

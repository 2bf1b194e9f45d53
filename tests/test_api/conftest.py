"""Общие фикстуры и хелперы для тестов API."""
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

from src.models.task import LinkStatus, Task


def make_task(task_id: int = 1, links: dict[str, LinkStatus] | None = None) -> Task:
    """Создать задачу с фиксированными таймстемпами."""
    now = datetime(2026, 2, 20, 10, 0, tzinfo=UTC)
    if links is None:
        links = {"example.com": LinkStatus.PROCESSING}
    return Task(id=task_id, links=links, created_at=now, updated_at=now)


def make_store(task: Task | None = None):
    """Создать мок TaskStore."""
    store = MagicMock()
    store.create_task = AsyncMock(return_value=task or make_task())
    store.get_task = AsyncMock(return_value=task)
    store.get_tasks_for_report = AsyncMock(return_value=[task] if task else [])
    store.count_tasks = AsyncMock(return_value=3)
    return store


def make_checker(active: int = 0):
    """Создать мок LinkChecker."""
    checker = MagicMock()
    checker.active_checks = active
    return checker


def make_app(store=None, checker=None, settings=None):
    """Создать FastAPI app с моками."""
    from src.api.app import create_app

    return create_app(
        store=store or make_store(),
        checker=checker or make_checker(),
        settings=settings or MagicMock(),
    )

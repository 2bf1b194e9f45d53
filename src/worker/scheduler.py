"""APScheduler-задачи сервиса: фоновая запись снапшота состояния."""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from src.config import Settings
from src.exceptions import StorageError
from src.storage import TaskStore


async def flush_state(store: TaskStore) -> None:
    """Записать снапшот, если с прошлой записи что-то менялось."""
    try:
        await store.flush_state()
    except StorageError as e:
        logger.error(f"Background state flush failed: {e}")


def create_scheduler(store: TaskStore, settings: Settings) -> AsyncIOScheduler:
    """Создать и настроить APScheduler."""
    scheduler = AsyncIOScheduler(
        job_defaults={
            # None = без ограничения (job всегда выполнится при опоздании)
            "misfire_grace_time": None,
            "coalesce": True,
        }
    )

    # Единственный писатель снапшотов: пропущенные запуски схлопываются,
    # параллельно не запускается (max_instances=1)
    scheduler.add_job(
        flush_state,
        "interval",
        seconds=settings.snapshot_interval_seconds,
        kwargs={"store": store},
        id="flush_state",
        max_instances=1,
    )

    return scheduler

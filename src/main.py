"""Точка входа сервиса: восстановление состояния и запуск API."""
import asyncio
import signal
import sys
from types import FrameType

import uvicorn
from loguru import logger

from src.api.app import create_app
from src.checker import LinkChecker
from src.config import load_settings
from src.exceptions import StateRestoreError, StorageError
from src.storage import TaskStore
from src.worker.recovery import recover_unfinished_tasks
from src.worker.scheduler import create_scheduler


async def persist_on_shutdown(store: TaskStore) -> None:
    """Финальное сохранение состояния, best effort: ошибка только логируется."""
    try:
        await store.save_state()
    except StorageError as e:
        logger.error(f"Failed to save state on shutdown: {e}")


async def restore_store(store: TaskStore, strict: bool) -> bool:
    """
    Восстановить состояние при старте.

    Битый снапшот: strict → вернуть False (старт запрещён);
    иначе отодвинуть файл в сторону и стартовать с пустым хранилищем.
    """
    try:
        await store.restore_state()
    except StateRestoreError as e:
        if strict:
            logger.critical(
                f"{e}. Refusing to start: fix or remove the state file, "
                f"or set STATE_RESTORE_STRICT=false"
            )
            return False
        try:
            store.quarantine_state_file()
        except OSError as move_error:
            logger.critical(
                f"{e}. Cannot move the state file aside ({move_error}), refusing to start"
            )
            return False
        logger.error(f"{e}. Starting with empty storage")
    return True


class LinkCheckerServer(uvicorn.Server):
    """uvicorn-сервер, который по сигналу сначала сохраняет состояние, потом останавливается."""

    def __init__(self, config: uvicorn.Config, store: TaskStore) -> None:
        super().__init__(config)
        self.store = store
        self.exit_requested = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._persist_task: asyncio.Task[None] | None = None

    async def serve(self, sockets=None) -> None:
        self._loop = asyncio.get_running_loop()
        await super().serve(sockets)

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        # Повторный сигнал: штатное поведение uvicorn (force exit на втором SIGINT)
        if self.exit_requested or self._loop is None:
            super().handle_exit(sig, frame)
            return
        self.exit_requested = True
        logger.info(f"Received signal {sig}, saving state before shutdown...")
        self._loop.call_soon_threadsafe(self._start_persist, sig, frame)

    def _start_persist(self, sig: int, frame: FrameType | None) -> None:
        assert self._loop is not None
        self._persist_task = self._loop.create_task(self._persist_and_exit(sig, frame))

    async def _persist_and_exit(self, sig: int, frame: FrameType | None) -> None:
        await persist_on_shutdown(self.store)
        super().handle_exit(sig, frame)


async def main() -> None:
    """Инициализация и запуск API."""
    settings = load_settings()

    # Логирование
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    if settings.log_level == "DEBUG":
        logger.add("logs/link_checker.log", rotation="100 MB", retention="7 days")

    logger.info("Starting link checker")

    # Состояние восстанавливается до приёма запросов
    store = TaskStore(settings.state_file)
    if not await restore_store(store, strict=settings.state_restore_strict):
        sys.exit(1)

    checker = LinkChecker(store, settings)
    recovered = await recover_unfinished_tasks(store, checker, settings.recovery_mode)
    if recovered:
        logger.info(f"Recovered {recovered} unfinished tasks (mode={settings.recovery_mode})")

    scheduler = create_scheduler(store, settings)
    scheduler.start()

    app = create_app(store, checker, settings)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level="warning",
        timeout_graceful_shutdown=settings.shutdown_grace_seconds,
    )
    server = LinkCheckerServer(config, store)

    # uvicorn после serve() заново поднимает перехваченные сигналы,
    # глушим их здесь, остановка уже обработана в LinkCheckerServer
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda: None)

    logger.info(f"API server starting on {settings.host}:{settings.port}")

    try:
        await server.serve()
    finally:
        scheduler.shutdown(wait=False)
        if not server.exit_requested:
            await persist_on_shutdown(store)
        await checker.aclose()
        logger.info("Link checker stopped")


if __name__ == "__main__":
    asyncio.run(main())

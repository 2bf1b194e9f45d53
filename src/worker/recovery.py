"""Разбор задач, прерванных рестартом процесса."""
from loguru import logger

from src.checker import LinkChecker
from src.config import RecoveryMode
from src.models.task import LinkStatus
from src.storage import TaskStore


async def recover_unfinished_tasks(
    store: TaskStore,
    checker: LinkChecker,
    mode: RecoveryMode,
) -> int:
    """
    Обработать задачи, у которых после восстановления остались ссылки в processing.

    recheck: перезапустить проверку только незавершённых ссылок (в фоне);
    error: пометить их как error;
    keep: оставить как есть.
    Возвращает количество затронутых задач.
    """
    unfinished = [task for task in await store.get_all_tasks() if not task.is_finished]
    if not unfinished:
        return 0

    if mode == "keep":
        logger.warning(f"{len(unfinished)} tasks have unfinished links, leaving them as is")
        return 0

    for task in unfinished:
        pending = task.pending_links()
        if mode == "recheck":
            logger.info(f"Rechecking {len(pending)} unfinished links of task #{task.id}")
            checker.submit(task, pending)
        else:
            for link in pending:
                await store.update_link_status(task.id, link, LinkStatus.ERROR)
            logger.warning(f"Marked {len(pending)} unfinished links of task #{task.id} as error")

    return len(unfinished)

"""In-memory хранилище задач с сохранением полного состояния в JSON-файл."""
import asyncio
import os
import tempfile
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from src.exceptions import StateRestoreError, StateSaveError
from src.models.task import LinkStatus, StateSnapshot, Task

DEFAULT_STATE_FILE = Path("state/storage.json")


def _write_atomic(path: Path, data: str) -> None:
    """Записать файл целиком через временный файл + os.replace.

    Имя временного файла уникально на каждую запись: поток прерванного
    save_state может ещё дописывать свой файл, пока идёт следующая запись.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f"{path.name}.",
        suffix=".tmp",
        delete=False,
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            tmp.write(data)
        except BaseException:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise
    try:
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


class TaskStore:
    """
    Единственный источник правды о задачах.

    Все операции сериализуются одним asyncio.Lock на всю карту задач.
    Наружу отдаются только копии Task, живые объекты не покидают хранилище.
    """

    def __init__(self, state_file: Path | str = DEFAULT_STATE_FILE) -> None:
        self.state_file = Path(state_file)
        self._lock = asyncio.Lock()
        self._tasks: dict[int, Task] = {}
        self._next_id = 1
        self._dirty = False

    @property
    def is_dirty(self) -> bool:
        """Есть изменения, ещё не попавшие в снапшот."""
        return self._dirty

    def request_save(self) -> None:
        """Пометить состояние грязным, запишет фоновый flush."""
        self._dirty = True

    async def create_task(self, links: Sequence[str]) -> Task:
        """Создать задачу со всеми ссылками в processing."""
        async with self._lock:
            now = datetime.now(UTC)
            task = Task(
                id=self._next_id,
                links={link: LinkStatus.PROCESSING for link in links},
                created_at=now,
                updated_at=now,
            )
            self._tasks[task.id] = task
            self._next_id += 1
            self.request_save()
            logger.info(f"Created task #{task.id} with {len(task.links)} links")
            return task.model_copy(deep=True)

    async def update_link_status(self, task_id: int, link: str, status: LinkStatus) -> None:
        """Обновить статус ссылки. Неизвестная задача или ссылка → no-op."""
        async with self._lock:
            task = self._tasks.get(task_id)
            if task is None or link not in task.links:
                logger.debug(f"Skip update for task #{task_id}, link {link!r}: not found")
                return
            task.links[link] = status
            task.updated_at = datetime.now(UTC)
            self.request_save()
            logger.debug(f"Task #{task_id}: {link} -> {status.value}")

    async def get_task(self, task_id: int) -> Task | None:
        async with self._lock:
            task = self._tasks.get(task_id)
            return task.model_copy(deep=True) if task is not None else None

    async def get_tasks_for_report(self, task_ids: Iterable[int]) -> list[Task]:
        """Найденные задачи в порядке запроса; отсутствующие id пропускаются."""
        requested = list(dict.fromkeys(task_ids))
        async with self._lock:
            found = [self._tasks[i].model_copy(deep=True) for i in requested if i in self._tasks]
        logger.info(f"Report requested for tasks {requested}, found: {len(found)}")
        return found

    async def get_all_tasks(self) -> list[Task]:
        async with self._lock:
            return [self._tasks[i].model_copy(deep=True) for i in sorted(self._tasks)]

    async def count_tasks(self) -> int:
        async with self._lock:
            return len(self._tasks)

    async def save_state(self) -> None:
        """
        Записать всё состояние (задачи + next_id) в файл, перезаписав прошлый снапшот.

        Лок держится на время записи. При ошибке in-memory состояние не трогается,
        а хранилище остаётся грязным, и следующий flush повторит попытку.
        """
        async with self._lock:
            snapshot = StateSnapshot(tasks=self._tasks, next_id=self._next_id)
            try:
                data = snapshot.model_dump_json(indent=2)
            except (TypeError, ValueError) as e:
                self._dirty = True
                raise StateSaveError(f"Failed to encode state: {e}") from e

            try:
                await asyncio.to_thread(_write_atomic, self.state_file, data)
            except OSError as e:
                self._dirty = True
                raise StateSaveError(f"Failed to write state file {self.state_file}: {e}") from e

            self._dirty = False
            logger.info(f"State saved. Tasks: {len(self._tasks)}")

    async def flush_state(self) -> bool:
        """Сохранить состояние, если оно грязное. Вернуть True, если запись была."""
        if not self._dirty:
            return False
        await self.save_state()
        return True

    async def restore_state(self) -> None:
        """
        Загрузить снапшот при старте.

        Нет файла: первый запуск, no-op. Битый файл: StateRestoreError,
        при этом текущее состояние хранилища не меняется.
        """
        async with self._lock:
            try:
                data = await asyncio.to_thread(self.state_file.read_text, encoding="utf-8")
            except FileNotFoundError:
                logger.info(f"State file {self.state_file} not found, starting with empty storage")
                return
            except (OSError, UnicodeDecodeError) as e:
                raise StateRestoreError(f"Failed to read state file {self.state_file}: {e}") from e

            try:
                snapshot = StateSnapshot.model_validate_json(data)
            except ValidationError as e:
                raise StateRestoreError(f"Failed to parse state file {self.state_file}: {e}") from e

            # id задачи внутри записи: источник правды, ключ словаря может врать
            tasks = {task.id: task for task in snapshot.tasks.values()}
            self._tasks = tasks
            self._next_id = max(snapshot.next_id, max(tasks, default=0) + 1)
            self._dirty = False
            logger.info(f"State restored. Tasks: {len(tasks)}, next id: {self._next_id}")

    def quarantine_state_file(self) -> Path | None:
        """Отодвинуть битый файл состояния, чтобы пустой старт его не перезаписал."""
        if not self.state_file.exists():
            return None
        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S")
        target = self.state_file.with_name(f"{self.state_file.name}.corrupt-{stamp}")
        self.state_file.rename(target)
        logger.warning(f"Corrupted state file moved to {target}")
        return target

"""Проверка доступности ссылок задачи: один HEAD-запрос на ссылку, все параллельно."""
import asyncio
import re
import time
from collections.abc import Iterable

import httpx
from loguru import logger

from src.config import Settings
from src.exceptions import InvalidLinkError, StorageError
from src.models.task import LinkStatus, Task
from src.storage import TaskStore

DEFAULT_SCHEME = "https"
SUPPORTED_SCHEMES = ("http", "https")

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


def normalize_link(link: str) -> str:
    """Добавить https://, если у ссылки нет схемы."""
    if _SCHEME_RE.match(link):
        return link
    return f"{DEFAULT_SCHEME}://{link}"


def build_probe_request(client: httpx.AsyncClient, link: str, user_agent: str) -> httpx.Request:
    """Собрать HEAD-запрос для ссылки. Бросает InvalidLinkError, если ссылка негодная."""
    url = normalize_link(link)
    try:
        request = client.build_request("HEAD", url, headers={"User-Agent": user_agent})
    except (httpx.InvalidURL, ValueError, TypeError) as e:
        raise InvalidLinkError(link, str(e)) from e

    if request.url.scheme not in SUPPORTED_SCHEMES:
        raise InvalidLinkError(link, f"unsupported scheme {request.url.scheme!r}")
    if not request.url.host:
        raise InvalidLinkError(link, "empty host")
    return request


def classify_status_code(status_code: int) -> LinkStatus:
    """2xx и 3xx: доступна, всё остальное: нет."""
    if 200 <= status_code < 400:
        return LinkStatus.AVAILABLE
    return LinkStatus.UNAVAILABLE


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """HTTP-клиент для проб: общий таймаут, пул keep-alive соединений, редиректы."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.probe_timeout_seconds),
        limits=httpx.Limits(
            max_connections=None,
            max_keepalive_connections=settings.probe_max_keepalive_connections,
            keepalive_expiry=settings.probe_keepalive_expiry_seconds,
        ),
        headers={"User-Agent": settings.probe_user_agent},
        follow_redirects=True,
    )


class LinkChecker:
    """
    Движок проверки ссылок.

    На каждую ссылку задачи запускается отдельная asyncio-задача, результат уходит
    в хранилище через update_link_status. После того как все ссылки задачи
    проверены, сохраняется снапшот всего хранилища.
    """

    def __init__(
        self,
        store: TaskStore,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.store = store
        self.timeout = settings.probe_timeout_seconds
        self.user_agent = settings.probe_user_agent
        self._owns_client = client is None
        self._client = client or create_http_client(settings)
        # None: fan-out без ограничения
        self._semaphore = (
            asyncio.Semaphore(settings.max_concurrent_probes)
            if settings.max_concurrent_probes > 0
            else None
        )
        self._active: set[asyncio.Task[None]] = set()

    @property
    def active_checks(self) -> int:
        return len(self._active)

    async def check_single_link(self, link: str) -> LinkStatus:
        """Одна проба: ошибка сборки запроса → error, сеть/таймаут → unavailable."""
        try:
            request = build_probe_request(self._client, link, self.user_agent)
        except InvalidLinkError as e:
            logger.warning(f"Failed to build request for {link}: {e}")
            return LinkStatus.ERROR

        start = time.monotonic()
        try:
            async with asyncio.timeout(self.timeout):
                response = await self._client.send(request)
        except (httpx.HTTPError, TimeoutError) as e:
            elapsed = time.monotonic() - start
            logger.info(f"Link {link} unavailable: {e!r} ({elapsed:.2f}s)")
            return LinkStatus.UNAVAILABLE

        elapsed = time.monotonic() - start
        logger.info(f"Link {link}: HTTP {response.status_code} ({elapsed:.2f}s)")
        return classify_status_code(response.status_code)

    async def check_links(self, task: Task, links: Iterable[str] | None = None) -> None:
        """
        Проверить ссылки задачи и дождаться всех результатов.

        links: подмножество ссылок задачи (для досрочно прерванных задач);
        по умолчанию проверяются все. Ошибка сохранения снапшота логируется.
        """
        if links is None:
            targets = list(task.links)
        else:
            targets = [link for link in links if link in task.links]
        logger.info(f"Checking task #{task.id} ({len(targets)} links)")

        await asyncio.gather(*(self._check_and_record(task.id, link) for link in targets))

        try:
            await self.store.save_state()
        except StorageError as e:
            logger.error(f"Failed to save state after task #{task.id}: {e}")

        logger.info(f"Finished checking task #{task.id}")

    async def _check_and_record(self, task_id: int, link: str) -> None:
        if self._semaphore is None:
            status = await self._safe_check(link)
        else:
            async with self._semaphore:
                status = await self._safe_check(link)
        await self.store.update_link_status(task_id, link, status)

    async def _safe_check(self, link: str) -> LinkStatus:
        # Ссылка не должна остаться в processing из-за неожиданной ошибки
        try:
            return await self.check_single_link(link)
        except Exception as e:
            logger.exception(f"Unexpected error while checking {link}: {e}")
            return LinkStatus.ERROR

    def submit(self, task: Task, links: Iterable[str] | None = None) -> asyncio.Task[None]:
        """Запустить check_links в фоне, не дожидаясь результата."""
        t = asyncio.create_task(self.check_links(task, links), name=f"check-task-{task.id}")
        self._active.add(t)
        t.add_done_callback(self._on_check_done)
        return t

    def _on_check_done(self, t: asyncio.Task[None]) -> None:
        self._active.discard(t)
        if not t.cancelled() and t.exception() is not None:
            logger.opt(exception=t.exception()).error(f"Background check {t.get_name()} failed")

    async def aclose(self) -> None:
        """Бросить незавершённые проверки и закрыть HTTP-клиент."""
        pending = list(self._active)
        if pending:
            logger.warning(f"Abandoning {len(pending)} in-flight checks")
            for t in pending:
                t.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        if self._owns_client:
            await self._client.aclose()

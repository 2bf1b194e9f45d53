"""Тесты старта и остановки сервиса."""
import asyncio
import signal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import uvicorn

from src.exceptions import StateRestoreError, StateSaveError
from src.main import LinkCheckerServer, persist_on_shutdown, restore_store
from src.storage import TaskStore


def _corrupt_store(tmp_path: Path) -> TaskStore:
    store = TaskStore(tmp_path / "storage.json")
    store.state_file.write_text("{broken", encoding="utf-8")
    return store


class TestRestoreStore:
    """Тесты restore_store — политика при битом снапшоте."""

    async def test_missing_file_ok(self, tmp_path: Path) -> None:
        store = TaskStore(tmp_path / "storage.json")
        assert await restore_store(store, strict=True) is True

    async def test_strict_refuses_to_start(self, tmp_path: Path) -> None:
        store = _corrupt_store(tmp_path)

        assert await restore_store(store, strict=True) is False
        # Файл не тронут — оператор разберётся
        assert store.state_file.read_text(encoding="utf-8") == "{broken"

    async def test_non_strict_quarantines_and_starts_empty(self, tmp_path: Path) -> None:
        store = _corrupt_store(tmp_path)

        assert await restore_store(store, strict=False) is True
        assert not store.state_file.exists()
        assert len(list(tmp_path.glob("storage.json.corrupt-*"))) == 1
        assert await store.count_tasks() == 0

    async def test_non_strict_quarantine_failure_refuses_to_start(self, tmp_path: Path) -> None:
        store = _corrupt_store(tmp_path)

        with patch.object(Path, "rename", side_effect=PermissionError("read-only")):
            assert await restore_store(store, strict=False) is False

        assert store.state_file.read_text(encoding="utf-8") == "{broken"

    async def test_error_propagates_as_restore_error(self) -> None:
        store = MagicMock()
        store.restore_state = AsyncMock(side_effect=StateRestoreError("bad"))

        assert await restore_store(store, strict=True) is False
        store.quarantine_state_file.assert_not_called()


class TestPersistOnShutdown:
    """Тесты финального сохранения."""

    async def test_saves_state(self, tmp_path: Path) -> None:
        store = TaskStore(tmp_path / "storage.json")
        await store.create_task(["a.com"])

        await persist_on_shutdown(store)

        assert store.state_file.exists()

    async def test_error_not_raised(self) -> None:
        store = MagicMock()
        store.save_state = AsyncMock(side_effect=StateSaveError("read-only fs"))

        await persist_on_shutdown(store)

        store.save_state.assert_awaited_once()


class TestLinkCheckerServer:
    """Тесты остановки по сигналу: сначала снапшот, потом uvicorn."""

    async def test_signal_persists_then_exits(self) -> None:
        store = MagicMock()
        store.save_state = AsyncMock()
        server = LinkCheckerServer(uvicorn.Config(app=MagicMock()), store)
        server._loop = asyncio.get_running_loop()

        with patch.object(uvicorn.Server, "handle_exit") as parent_exit:
            server.handle_exit(signal.SIGTERM, None)
            assert server.exit_requested
            parent_exit.assert_not_called()

            for _ in range(5):
                await asyncio.sleep(0)
            if server._persist_task is not None:
                await server._persist_task

        store.save_state.assert_awaited_once()
        parent_exit.assert_called_once_with(signal.SIGTERM, None)

    async def test_second_signal_goes_straight_to_uvicorn(self) -> None:
        store = MagicMock()
        store.save_state = AsyncMock()
        server = LinkCheckerServer(uvicorn.Config(app=MagicMock()), store)
        server._loop = asyncio.get_running_loop()
        server.exit_requested = True

        with patch.object(uvicorn.Server, "handle_exit") as parent_exit:
            server.handle_exit(signal.SIGINT, None)

        parent_exit.assert_called_once_with(signal.SIGINT, None)
        store.save_state.assert_not_called()

"""FastAPI-приложение сервиса проверки ссылок."""
import asyncio

from fastapi import FastAPI, HTTPException, Path, Response
from loguru import logger

from src.api.schemas import (
    CheckRequest,
    CheckResponse,
    HealthResponse,
    ReportRequest,
    StatusResponse,
)
from src.checker import LinkChecker
from src.config import Settings
from src.models.task import LinkStatus
from src.report import generate_report
from src.storage import TaskStore


def create_app(store: TaskStore, checker: LinkChecker, settings: Settings) -> FastAPI:
    """Создать FastAPI-приложение с зависимостями."""
    app = FastAPI(title="Link Checker API", version="0.1.0")

    # Сохраняем зависимости в app.state
    app.state.store = store
    app.state.checker = checker
    app.state.settings = settings

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Healthcheck."""
        return HealthResponse(
            status="ok",
            tasks_total=await store.count_tasks(),
            active_checks=checker.active_checks,
        )

    @app.post("/api/check", response_model=CheckResponse)
    async def check_links(body: CheckRequest) -> CheckResponse:
        """Создать задачу и запустить проверку в фоне."""
        task = await store.create_task(body.links)
        checker.submit(task)
        return CheckResponse(
            links={link: LinkStatus.PROCESSING.display for link in body.links},
            links_num=task.id,
        )

    @app.get("/api/status/{task_id}", response_model=StatusResponse)
    async def get_status(task_id: int = Path(ge=0, description="ID задачи")) -> StatusResponse:
        """Текущие статусы всех ссылок задачи."""
        task = await store.get_task(task_id)
        if task is None:
            raise HTTPException(status_code=404, detail="Task not found")
        return StatusResponse(
            links={link: status.display for link, status in task.links.items()},
            links_num=task.id,
        )

    @app.post("/api/report")
    async def get_report(body: ReportRequest) -> Response:
        """PDF-отчёт по найденным задачам."""
        tasks = await store.get_tasks_for_report(body.links_list)
        if not tasks:
            raise HTTPException(status_code=404, detail="No tasks found for given ids")

        try:
            # Рендер PDF CPU-bound, не блокируем event loop
            pdf_bytes = await asyncio.to_thread(generate_report, tasks)
        except Exception as e:
            logger.exception(f"Failed to render report for {body.links_list}: {e}")
            raise HTTPException(status_code=500, detail="Failed to generate report")

        return Response(
            content=pdf_bytes,
            media_type="application/pdf",
            headers={"Content-Disposition": "attachment; filename=report.pdf"},
        )

    return app

"""PDF-отчёт по задачам проверки ссылок."""
from collections.abc import Sequence
from datetime import UTC, datetime

from fpdf import FPDF

from src.models.task import LinkStatus, Task

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
LINK_MAX_LEN = 60

# Цвет текста статуса (RGB)
STATUS_COLORS: dict[LinkStatus, tuple[int, int, int]] = {
    LinkStatus.AVAILABLE: (0, 128, 0),
    LinkStatus.UNAVAILABLE: (255, 0, 0),
    LinkStatus.PROCESSING: (255, 165, 0),
    LinkStatus.ERROR: (128, 128, 128),
}
STATUS_LABELS: dict[LinkStatus, str] = {
    LinkStatus.AVAILABLE: "Available",
    LinkStatus.UNAVAILABLE: "Not available",
    LinkStatus.PROCESSING: "Processing",
    LinkStatus.ERROR: "Error",
}


def truncate(text: str, max_len: int = LINK_MAX_LEN) -> str:
    """Обрезать строку до max_len символов с многоточием."""
    if len(text) > max_len:
        return text[: max_len - 3] + "..."
    return text


def _pdf_safe(text: str) -> str:
    """Встроенные шрифты PDF умеют только Latin-1, остальное заменяем на '?'."""
    return text.encode("latin-1", "replace").decode("latin-1")


def _render_task(pdf: FPDF, task: Task) -> None:
    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(190, 8, _pdf_safe(f"Task #{task.id} - {task.created_at.strftime(TIME_FORMAT)}"))
    pdf.ln(8)

    pdf.set_font("Helvetica", "B", 10)
    pdf.cell(120, 8, "Link")
    pdf.cell(70, 8, "Status")
    pdf.ln(8)
    pdf.set_font("Helvetica", "", 10)

    for row, (link, status) in enumerate(task.links.items()):
        # Чередование фона строк
        if row % 2 == 0:
            pdf.set_fill_color(255, 255, 255)
        else:
            pdf.set_fill_color(245, 245, 245)

        pdf.set_text_color(0, 0, 0)
        pdf.cell(120, 8, _pdf_safe(truncate(link)), border=1, fill=True)
        pdf.set_text_color(*STATUS_COLORS[status])
        pdf.cell(70, 8, STATUS_LABELS[status], border=1, fill=True)
        pdf.ln(8)

    pdf.set_text_color(0, 0, 0)
    pdf.set_font("Helvetica", "I", 9)
    summary = ", ".join(
        f"{STATUS_LABELS[status].lower()}: {count}"
        for status, count in task.status_counts().items()
        if count
    )
    pdf.cell(190, 6, summary)
    pdf.ln(12)


def generate_report(tasks: Sequence[Task]) -> bytes:
    """Отрендерить A4 PDF по списку задач и вернуть байты документа."""
    pdf = FPDF(orientation="P", unit="mm", format="A4")
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(190, 10, "Link check report")
    pdf.ln(15)

    for task in tasks:
        _render_task(pdf, task)

    generated_at = datetime.now(UTC).strftime(TIME_FORMAT)
    pdf.set_font("Helvetica", "I", 10)
    pdf.cell(190, 8, f"Total tasks: {len(tasks)} | Generated: {generated_at}")
    pdf.ln(15)

    return bytes(pdf.output())

import asyncio
import os
from collections.abc import Awaitable, Callable
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

import structlog
import typer
from dotenv import load_dotenv

from .api.client import ApiClient
from .controllers import (
    ResearchCreateController,
    ResearchListController,
    StudentListController,
)
from .core.config import get_config, set_test_mode
from .core.errors import SalikAdminError
from .core.models import UploadEntry
from .storage.uploads import ObjectStorage
from .utils.log import get_logger, setup_logging

# Load environment variables from .env file
load_dotenv()

T = TypeVar("T")

# Global state for logging configuration
_log_state: dict[str, Any] = {
    "session_id": datetime.now().strftime("%Y%m%d_%H%M%S"),
    "log_file": None,
    "logger": None,
}

app = typer.Typer(help="MC Salik-Sik Library System administration.")
research_app = typer.Typer(help="Research repository: list, add, edit, delete.")
students_app = typer.Typer(help="Student roster: list, bulk import, delete.")
app.add_typer(research_app, name="research")
app.add_typer(students_app, name="students")


@app.callback()
def callback(
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress console log output (logs still written to file)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging"),
    test: bool = typer.Option(
        False, "--test", help="Use test environment (separate API and storage bucket)"
    ),
) -> None:
    """Initialize application with structured logging and environment configuration."""
    if test:
        set_test_mode()

    log_level = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "INFO")

    console_output = not quiet
    _log_state["log_file"] = setup_logging(
        session_id=_log_state["session_id"],
        log_level=log_level,
        console_output=console_output,
    )
    _log_state["logger"] = get_logger(__name__)

    if console_output:
        _log_state["logger"].info(
            "application_started",
            session_id=_log_state["session_id"],
            log_file=str(_log_state["log_file"]),
            test_mode=test,
            **get_config().get_summary(),
        )


def _get_logger() -> structlog.BoundLogger | Any:
    """Get the application logger."""
    if _log_state["logger"] is None:
        _log_state["log_file"] = setup_logging(session_id=_log_state["session_id"])
        _log_state["logger"] = get_logger(__name__)
    return _log_state["logger"]


class _LogProxy:
    """Proxy class that forwards all attribute access to the lazily-initialized logger."""

    def __getattr__(self, name: str) -> Any:
        return getattr(_get_logger(), name)


log = _LogProxy()


def _run(work: Callable[[ApiClient, ObjectStorage], Awaitable[T]]) -> T:
    """Run one command against fresh API/storage clients.

    Any SalikAdminError is reported as ``<action> failed`` and exits with 1.
    """

    async def main() -> T:
        async with ApiClient() as api, ObjectStorage() as storage:
            return await work(api, storage)

    try:
        return asyncio.run(main())
    except SalikAdminError as e:
        log.error("command_failed", action=e.action, error=e.message, error_type=type(e).__name__)
        typer.echo(f"Error: {e.action} failed: {e.message}", err=True)
        raise typer.Exit(code=1) from e


def _echo_progress(label: str) -> Callable[[int, int], None]:
    def report(sent: int, total: int) -> None:
        percent = int(sent / total * 100) if total else 100
        typer.echo(f"\r{label}: {percent}% ({sent}/{total} bytes)", nl=False)
        if sent >= total:
            typer.echo()

    return report


def _parse_entry(raw: str) -> UploadEntry:
    parts = raw.split("|")
    if len(parts) != 4:
        raise typer.BadParameter(f"expected 'TITLE|KEYWORD|YEAR|PDF_PATH', got {raw!r}")
    title, keyword, year, pdf = (p.strip() for p in parts)
    return UploadEntry(title=title, keyword=keyword, year=year, pdf=Path(pdf) if pdf else None)


# --- research -----------------------------------------------------------


@research_app.command("list")
def research_list(
    search: str = typer.Option("", "--search", "-s", help="Filter by title or year"),
) -> None:
    """List research records."""

    async def work(api: ApiClient, storage: ObjectStorage) -> None:
        controller = ResearchListController(api, storage)
        typer.echo("Fetching research data, please wait...")
        await controller.refresh()
        records = controller.search(search)
        for rec in records:
            typer.echo(f"{rec.id}\t{rec.title}\t{rec.year or ''}\t{rec.abstract_url or ''}")
        typer.echo(f"{len(records)} of {len(controller.records)} research records")

    _run(work)


@research_app.command("add")
def research_add(
    entries: list[str] = typer.Option(  # noqa: B008
        ..., "--entry", "-e", help="Research entry as 'TITLE|KEYWORD|YEAR|PDF_PATH' (repeatable)"
    ),
) -> None:
    """Upload abstracts and create one or more research records."""
    parsed = [_parse_entry(e) for e in entries]
    log.info("research_add_started", entries=len(parsed))

    async def work(api: ApiClient, storage: ObjectStorage) -> int:
        controller = ResearchCreateController(api, storage)
        controller.entries = parsed
        typer.echo("Uploading... please wait while the PDFs are being uploaded.")
        created = await controller.submit()
        return len(created)

    count = _run(work)
    typer.echo(f"All research data uploaded successfully! ({count} records)")


@research_app.command("edit")
def research_edit(
    record_id: str,
    title: str | None = typer.Option(None, help="New title"),
    keyword: str | None = typer.Option(None, help="New keyword"),
    year: str | None = typer.Option(None, help="New 4-digit year"),
    pdf: Path | None = typer.Option(None, help="Replacement abstract PDF"),  # noqa: B008
) -> None:
    """Update a research record; unspecified fields keep their current value."""

    async def work(api: ApiClient, storage: ObjectStorage) -> bool:
        controller = ResearchListController(api, storage)
        await controller.refresh()
        record = controller.find(record_id)
        if record is None:
            return False
        editor = controller.edit(record)
        if title is not None:
            editor.title = title
        if keyword is not None:
            editor.keyword = keyword
        if year is not None:
            editor.year = year
        editor.replacement = pdf
        await controller.save_edit(
            editor, on_progress=_echo_progress("Uploading") if pdf else None
        )
        return True

    if not _run(work):
        typer.echo(f"No research record with id {record_id}.", err=True)
        raise typer.Exit(code=1)
    typer.echo("The research details have been updated successfully.")


@research_app.command("delete")
def research_delete(
    record_id: str,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete a research record."""

    async def work(api: ApiClient, storage: ObjectStorage) -> bool:
        controller = ResearchListController(api, storage)
        return await controller.delete(record_id, lambda msg: yes or typer.confirm(msg))

    if _run(work):
        typer.echo("Deleted! Research has been deleted.")
    else:
        typer.echo("Cancelled.")


# --- students -----------------------------------------------------------


@students_app.command("list")
def students_list(
    search: str = typer.Option("", "--search", "-s", help="Filter by email or name"),
) -> None:
    """List students."""

    async def work(api: ApiClient, storage: ObjectStorage) -> None:
        controller = StudentListController(api)
        typer.echo("Fetching students data, please wait...")
        await controller.refresh()
        students = controller.search(search)
        for s in students:
            typer.echo(f"{s.email}\t{s.first_name or ''}\t{s.last_name or ''}")
        typer.echo(f"{len(students)} of {len(controller.students)} students")

    _run(work)


@students_app.command("import")
def students_import(
    path: Path,
    yes: bool = typer.Option(False, "--yes", "-y", help="Insert without asking for confirmation"),
) -> None:
    """Load students from an .xlsx/.xls file and insert the valid ones."""

    async def work(api: ApiClient, storage: ObjectStorage) -> int:
        controller = StudentListController(api)
        batch = await controller.load_import_file(path)
        typer.echo(f"{len(batch)} valid students loaded.")
        if not (yes or typer.confirm("Insert students?")):
            return 0
        typer.echo("Inserting new students...")
        return await controller.insert_pending()

    inserted = _run(work)
    if inserted:
        typer.echo(f"New students inserted successfully! ({inserted})")
    else:
        typer.echo("Cancelled; nothing was inserted.")


@students_app.command("delete")
def students_delete(
    email: str,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete a student by email."""

    async def work(api: ApiClient, storage: ObjectStorage) -> bool:
        controller = StudentListController(api)
        return await controller.delete(email, lambda msg: yes or typer.confirm(msg))

    if _run(work):
        typer.echo(f"Successfully deleted {email}.")
    else:
        typer.echo("Cancelled.")


if __name__ == "__main__":
    app()

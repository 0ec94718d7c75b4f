from collections.abc import Callable
from pathlib import Path

from ..api.client import ApiClient
from ..core.errors import EmptyWorkbookError, NoValidRowsError
from ..core.models import StudentRecord
from ..importer import PendingImportBatch, filter_report, submit_batch
from ..io_.load import read_rows
from ..utils.log import get_logger
from .search import substring_filter

log = get_logger(__name__)

ConfirmCallback = Callable[[str], bool]


class StudentListController:
    """Student roster: cached list, search, delete, and the bulk import batch."""

    def __init__(self, api: ApiClient) -> None:
        self.api = api
        self.students: list[StudentRecord] = []
        self.pending = PendingImportBatch()
        self.loading = False

    async def refresh(self) -> list[StudentRecord]:
        self.loading = True
        try:
            self.students = await self.api.list_students()
        finally:
            self.loading = False
        return self.students

    def search(self, term: str) -> list[StudentRecord]:
        # Matches the joined "email first last" text, like the roster search box
        return substring_filter(
            self.students,
            term,
            lambda s: [" ".join(str(v or "") for v in (s.email, s.first_name, s.last_name))],
        )

    async def load_import_file(self, path: Path) -> PendingImportBatch:
        """
        Decode ``path`` and stage its valid rows as the pending batch.

        Raises:
            WorkbookDecodeError: The file is not a readable spreadsheet.
            EmptyWorkbookError: The first sheet has no data rows.
            NoValidRowsError: No row has an institutional email.
        """
        rows = await read_rows(path)
        if not rows:
            log.warning("import_file_empty", path=str(path))
            raise EmptyWorkbookError("load students", f"no data found in {path.name}")

        report = filter_report(rows)
        if not report.kept:
            log.warning("import_file_no_valid_rows", path=str(path), rejected=report.rejected)
            raise NoValidRowsError("load students", f"no valid students found in {path.name}")

        self.pending.replace(report.kept, source=path.name)
        log.info(
            "import_file_staged",
            path=str(path),
            valid=len(report.kept),
            rejected=report.rejected,
        )
        return self.pending

    async def insert_pending(self) -> int:
        """Submit the pending batch, then reload the roster from the server."""
        self.loading = True
        try:
            count = await submit_batch(self.api, self.pending)
            await self.refresh()
        finally:
            self.loading = False
        return count

    async def delete(self, email: str, confirm: ConfirmCallback) -> bool:
        """Delete one student after confirmation; returns False if declined."""
        if not confirm(f"Are you sure you want to delete {email}?"):
            log.info("student_delete_cancelled", email=email)
            return False
        self.loading = True
        try:
            await self.api.delete_student(email)
            await self.refresh()
        finally:
            self.loading = False
        return True

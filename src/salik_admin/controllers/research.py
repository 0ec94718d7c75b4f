import asyncio
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ..api.client import ApiClient
from ..core.config import ABSTRACT_PREFIX, REPLACEMENT_PDF_PREFIX
from ..core.errors import FormValidationError, LocalValidationError
from ..core.models import ResearchCreate, ResearchRecord, ResearchUpdate, UploadEntry
from ..storage.uploads import ObjectStorage, ProgressCallback
from ..utils.log import get_logger
from .search import substring_filter

log = get_logger(__name__)

ConfirmCallback = Callable[[str], bool]

_YEAR_RE = re.compile(r"^\d{4}$")


def _entry_problems(entry: UploadEntry, require_file: bool = True) -> list[str]:
    problems = []
    if not entry.title.strip():
        problems.append("title is required")
    if not _YEAR_RE.match(entry.year.strip()):
        problems.append("year must be a 4-digit number")
    if require_file and entry.pdf is None:
        problems.append("a PDF file must be attached")
    return problems


class ResearchCreateController:
    """The add-research form: N entries, each uploaded then created in one batch."""

    ACTION = "create research"

    def __init__(self, api: ApiClient, storage: ObjectStorage) -> None:
        self.api = api
        self.storage = storage
        self.entries: list[UploadEntry] = [UploadEntry()]
        self.loading = False

    def add_entry(self, entry: UploadEntry | None = None) -> int:
        self.entries.append(entry or UploadEntry())
        return len(self.entries) - 1

    def remove_entry(self, index: int) -> None:
        if len(self.entries) == 1:
            raise LocalValidationError(self.ACTION, "the form needs at least one entry")
        del self.entries[index]

    def set_field(self, index: int, name: str, value: Any) -> None:
        if name not in UploadEntry.model_fields:
            raise KeyError(name)
        data = self.entries[index].model_dump()
        data[name] = value
        self.entries[index] = UploadEntry.model_validate(data)

    def reset(self) -> None:
        self.entries = [UploadEntry()]

    def validate(self) -> None:
        """Raise FormValidationError naming every incomplete entry."""
        problems = []
        for i, entry in enumerate(self.entries, start=1):
            problems.extend(f"entry {i}: {p}" for p in _entry_problems(entry))
        if problems:
            log.warning("research_form_invalid", problems=problems)
            raise FormValidationError(self.ACTION, problems)

    async def _upload(
        self, entry: UploadEntry, pdf: Path, on_progress: ProgressCallback | None
    ) -> ResearchCreate:
        url = await self.storage.upload_file(ABSTRACT_PREFIX, pdf, on_progress=on_progress)
        return ResearchCreate(
            title=entry.title.strip(),
            keyword=entry.keyword.strip(),
            year=entry.year.strip(),
            url=url,
        )

    async def submit(
        self, on_progress: Callable[[int, int, int], None] | None = None
    ) -> list[ResearchCreate]:
        """
        Upload every attached PDF concurrently, then create all entries at once.

        Args:
            on_progress: Optional callback (entry_index, bytes_sent, total_bytes)

        Returns:
            The payload items that were created.

        Raises:
            FormValidationError: An entry lacks title, year or file; nothing is sent.
            UploadError: Any upload failed; the create request is not issued.
            ApiError: The bulk create request failed.
        """
        self.validate()

        def progress_for(index: int) -> ProgressCallback | None:
            if on_progress is None:
                return None
            return lambda sent, total: on_progress(index, sent, total)

        # validate() guarantees every entry has a file
        attached = [(i, entry, entry.pdf) for i, entry in enumerate(self.entries) if entry.pdf]

        self.loading = True
        log.info("research_upload_started", entries=len(attached))
        try:
            created = await asyncio.gather(
                *(self._upload(entry, pdf, progress_for(i)) for i, entry, pdf in attached)
            )
            await self.api.create_research_bulk(list(created))
        finally:
            self.loading = False

        self.reset()
        return list(created)


class ResearchEditController:
    """Edit form for one record; the update always resends every field."""

    ACTION = "update research"

    def __init__(self, api: ApiClient, storage: ObjectStorage, record: ResearchRecord) -> None:
        self.api = api
        self.storage = storage
        self.record_id = record.id
        self.title = record.title
        self.keyword = record.keyword or ""
        self.year = record.year or ""
        self.pdf_url = record.abstract_url
        self.replacement: Path | None = None
        self.loading = False

    def validate(self) -> None:
        entry = UploadEntry(title=self.title, keyword=self.keyword, year=self.year)
        problems = _entry_problems(entry, require_file=False)
        if problems:
            raise FormValidationError(self.ACTION, problems)

    async def submit(self, on_progress: ProgressCallback | None = None) -> ResearchUpdate:
        """Upload the replacement file if one was chosen, then send the full record."""
        self.validate()
        self.loading = True
        try:
            pdf_url = self.pdf_url
            if self.replacement is not None:
                pdf_url = await self.storage.upload_file(
                    REPLACEMENT_PDF_PREFIX,
                    self.replacement,
                    on_progress=on_progress,
                    action=self.ACTION,
                )
                self.pdf_url = pdf_url
                self.replacement = None

            update = ResearchUpdate(
                title=self.title,
                keyword=self.keyword,
                year=self.year,
                pdf_url=pdf_url,
            )
            await self.api.update_research(self.record_id, update)
        finally:
            self.loading = False
        return update


class ResearchListController:
    def __init__(self, api: ApiClient, storage: ObjectStorage) -> None:
        self.api = api
        self.storage = storage
        self.records: list[ResearchRecord] = []
        self.loading = False

    async def refresh(self) -> list[ResearchRecord]:
        self.loading = True
        try:
            self.records = await self.api.list_research()
        finally:
            self.loading = False
        return self.records

    def search(self, query: str) -> list[ResearchRecord]:
        return substring_filter(self.records, query, lambda r: [r.title, r.year])

    def find(self, record_id: int | str) -> ResearchRecord | None:
        for record in self.records:
            if str(record.id) == str(record_id):
                return record
        return None

    def edit(self, record: ResearchRecord) -> ResearchEditController:
        return ResearchEditController(self.api, self.storage, record)

    async def save_edit(
        self, editor: ResearchEditController, on_progress: ProgressCallback | None = None
    ) -> ResearchUpdate:
        self.loading = True
        try:
            update = await editor.submit(on_progress=on_progress)
            await self.refresh()
        finally:
            self.loading = False
        return update

    async def delete(self, record_id: int | str, confirm: ConfirmCallback) -> bool:
        if not confirm("Are you sure? This action cannot be undone."):
            log.info("research_delete_cancelled", record_id=record_id)
            return False
        self.loading = True
        try:
            await self.api.delete_research(record_id)
            await self.refresh()
        finally:
            self.loading = False
        return True

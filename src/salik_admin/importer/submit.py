from collections.abc import Iterator

from ..api.client import ApiClient
from ..core.errors import EmptyBatchError, SubmitInProgressError
from ..core.models import StudentRecord
from ..utils.log import get_logger

log = get_logger(__name__)

ACTION = "insert students"


class PendingImportBatch:
    """Students decoded from a workbook and waiting for the operator to confirm.

    The batch survives a failed submit unchanged so the same rows can be sent
    again without re-reading the file.
    """

    def __init__(self) -> None:
        self._students: list[StudentRecord] = []
        self.source: str | None = None
        self.in_flight = False

    def replace(self, students: list[StudentRecord], source: str | None = None) -> None:
        """Stage new rows; refused while a submit of the current rows is pending."""
        if self.in_flight:
            log.warning("pending_batch_replace_rejected", source=source, in_flight_count=len(self))
            raise SubmitInProgressError(
                "load students", "wait for the pending insert to finish before loading another file"
            )
        self._students = list(students)
        self.source = source
        log.info("pending_batch_replaced", count=len(self._students), source=source)

    def clear(self) -> None:
        self._students = []
        self.source = None

    @property
    def students(self) -> list[StudentRecord]:
        return list(self._students)

    @property
    def is_empty(self) -> bool:
        return not self._students

    def __len__(self) -> int:
        return len(self._students)

    def __iter__(self) -> Iterator[StudentRecord]:
        return iter(list(self._students))


async def submit_batch(api: ApiClient, batch: PendingImportBatch) -> int:
    """
    Send the pending batch in one ``insert_students`` request.

    Returns:
        Number of students submitted. The batch is cleared only on success.

    Raises:
        EmptyBatchError: Nothing to submit; no request is made.
        SubmitInProgressError: A submit of this batch has not completed yet.
        ApiError: The request failed; the batch is left as it was.
    """
    if batch.is_empty:
        log.warning("empty_batch_submit_rejected")
        raise EmptyBatchError(ACTION, "there are no valid students to insert")
    if batch.in_flight:
        log.warning("batch_submit_already_in_flight", count=len(batch))
        raise SubmitInProgressError(ACTION, "an insert for this batch is still in progress")

    students = batch.students
    batch.in_flight = True
    try:
        await api.insert_students(students)
    finally:
        batch.in_flight = False

    batch.clear()
    log.info("batch_submitted", count=len(students))
    return len(students)

"""Row filtering for bulk student import.

Only the email column is checked here; names are passed through as decoded
and the API decides what else it accepts.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from ..core.config import STUDENT_EMAIL_DOMAIN
from ..core.models import StudentRecord
from ..utils.log import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class FilterReport:
    kept: list[StudentRecord]
    rejected: int

    @property
    def total(self) -> int:
        return len(self.kept) + self.rejected


def is_importable(row: Mapping[str, Any], domain: str = STUDENT_EMAIL_DOMAIN) -> bool:
    """True when the row has a string ``email`` ending with the institutional suffix."""
    email = row.get("email")
    return isinstance(email, str) and email.endswith(domain)


def filter_report(
    rows: Iterable[Mapping[str, Any]], domain: str = STUDENT_EMAIL_DOMAIN
) -> FilterReport:
    kept: list[StudentRecord] = []
    rejected = 0
    for row in rows:
        if is_importable(row, domain):
            kept.append(StudentRecord.model_validate(dict(row)))
        else:
            rejected += 1
            log.debug("student_row_rejected", email=row.get("email"))
    log.info("student_rows_filtered", kept=len(kept), rejected=rejected, domain=domain)
    return FilterReport(kept=kept, rejected=rejected)


def filter_valid_students(
    rows: Iterable[Mapping[str, Any]], domain: str = STUDENT_EMAIL_DOMAIN
) -> list[StudentRecord]:
    """Return the importable rows, in input order, as student candidates."""
    return filter_report(rows, domain).kept

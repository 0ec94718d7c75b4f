"""
Bulk student import: workbook rows are filtered down to institutional
emails, held as a pending batch, then sent to the API in one request.
"""

from .rules import FilterReport, filter_report, filter_valid_students, is_importable
from .submit import PendingImportBatch, submit_batch

__all__ = [
    "FilterReport",
    "PendingImportBatch",
    "filter_report",
    "filter_valid_students",
    "is_importable",
    "submit_batch",
]

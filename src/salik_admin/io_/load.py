import asyncio
import io
from pathlib import Path
from typing import Any

import pandas as pd

from ..core.errors import WorkbookDecodeError
from ..utils.log import get_logger

log = get_logger(__name__)

ACTION = "read workbook"


def _engine_for(source: Path | bytes) -> str | None:
    # Let pandas sniff raw bytes; pick the engine from the suffix for paths
    if isinstance(source, Path):
        suffix = source.suffix.lower()
        if suffix == ".xls":
            return "xlrd"
        if suffix == ".xlsx":
            return "openpyxl"
    return None


def _to_python(val: Any) -> Any:
    """Turn a pandas/numpy cell into a plain scalar, or None for empty cells."""
    if pd.isna(val):
        return None
    if hasattr(val, "item"):
        return val.item()
    return val


def load_rows(source: Path | bytes) -> list[dict[str, Any]]:
    """Decode the first sheet of a workbook into header-keyed row mappings.

    Empty cells are left out of each row; blank-header columns are dropped.
    A sheet without data rows yields an empty list.
    """
    label = str(source) if isinstance(source, Path) else f"<{len(source)} bytes>"
    log.info("loading_workbook", source=label)

    buffer = source if isinstance(source, Path) else io.BytesIO(source)
    try:
        # Per-cell types; a blank cell would otherwise make an int column float64
        df = pd.read_excel(
            buffer, sheet_name=0, header=0, dtype=object, engine=_engine_for(source)
        )
    except Exception as e:
        log.error("workbook_parse_failed", source=label, error=str(e), error_type=type(e).__name__)
        raise WorkbookDecodeError(ACTION, f"cannot read {label} as a spreadsheet: {e}") from e

    df.columns = [str(c) for c in df.columns]
    df = df[[c for c in df.columns if not c.startswith("Unnamed:")]]

    rows: list[dict[str, Any]] = []
    for record in df.to_dict(orient="records"):
        row = {k: _to_python(v) for k, v in record.items()}
        row = {k: v for k, v in row.items() if v is not None}
        if row:
            rows.append(row)

    log.info("workbook_loaded", source=label, row_count=len(rows), columns=list(df.columns))
    return rows


async def read_rows(path: Path) -> list[dict[str, Any]]:
    """Async variant of ``load_rows``; file I/O and parsing run in a worker thread."""
    return await asyncio.to_thread(load_rows, path)

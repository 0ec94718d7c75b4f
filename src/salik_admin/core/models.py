from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


def _scalar_to_text(value: Any) -> Any:
    # Spreadsheet cells and some API rows carry numbers where text is expected
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float, bool)):
        return str(value)
    return value


class ResearchRecord(BaseModel):
    """A research entry as returned by ``GET /api/research``."""

    model_config = ConfigDict(extra="ignore")

    id: int | str
    title: str
    keyword: str | None = None
    year: str | None = None
    abstract_url: str | None = None

    @field_validator("year", mode="before")
    @classmethod
    def _year_as_text(cls, value: Any) -> Any:
        return _scalar_to_text(value)


class ResearchCreate(BaseModel):
    # Item of the ``researchList`` array sent to ``POST /api/research/bulk``
    title: str
    keyword: str = ""
    year: str
    url: str


class ResearchUpdate(BaseModel):
    """Full-replace body for ``PUT /api/research/{id}``."""

    title: str
    keyword: str = ""
    year: str
    pdf_url: str | None = None


class StudentRecord(BaseModel):
    # Extra spreadsheet columns travel with the row to insert_students
    model_config = ConfigDict(extra="allow")

    email: str
    first_name: str | None = None
    last_name: str | None = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def _names_as_text(cls, value: Any) -> Any:
        return _scalar_to_text(value)


class UploadEntry(BaseModel):
    """One row of the add-research form; ``pdf`` is the not-yet-uploaded file."""

    title: str = ""
    keyword: str = ""
    year: str = ""
    pdf: Path | None = None

    @field_validator("year", mode="before")
    @classmethod
    def _year_as_text(cls, value: Any) -> Any:
        return _scalar_to_text(value)

import pandas as pd
import pytest

from salik_admin.core.errors import WorkbookDecodeError
from salik_admin.io_.load import load_rows, read_rows


def test_load_rows(make_workbook):
    path = make_workbook(
        [
            {"email": "a@mabinicolleges.edu.ph", "first_name": "A", "last_name": "Z", "year_level": 3},
            {"email": "b@gmail.com", "first_name": "B", "last_name": None, "year_level": 1},
        ]
    )
    rows = load_rows(path)
    assert len(rows) == 2
    assert rows[0] == {"email": "a@mabinicolleges.edu.ph", "first_name": "A", "last_name": "Z", "year_level": 3}
    assert isinstance(rows[0]["year_level"], int)
    # empty cells are omitted, not carried as NaN
    assert "last_name" not in rows[1]


def test_load_rows_header_only_sheet_is_empty(make_workbook):
    path = make_workbook([], columns=["email", "first_name", "last_name"])
    assert load_rows(path) == []


def test_load_rows_reads_first_sheet_only(tmp_path):
    path = tmp_path / "two_sheets.xlsx"
    with pd.ExcelWriter(path) as writer:
        pd.DataFrame({"email": ["first@mabinicolleges.edu.ph"]}).to_excel(writer, sheet_name="Roster", index=False)
        pd.DataFrame({"email": ["second@mabinicolleges.edu.ph"]}).to_excel(writer, sheet_name="Other", index=False)
    assert load_rows(path) == [{"email": "first@mabinicolleges.edu.ph"}]


def test_load_rows_from_bytes(make_workbook):
    path = make_workbook([{"email": "a@mabinicolleges.edu.ph"}])
    assert load_rows(path.read_bytes()) == [{"email": "a@mabinicolleges.edu.ph"}]


def test_load_rows_rejects_non_spreadsheet(tmp_path):
    path = tmp_path / "notes.xlsx"
    path.write_text("this is not a workbook")
    with pytest.raises(WorkbookDecodeError) as exc:
        load_rows(path)
    assert exc.value.action == "read workbook"


@pytest.mark.asyncio
async def test_read_rows_async(make_workbook):
    path = make_workbook([{"email": "a@mabinicolleges.edu.ph", "first_name": "A"}])
    rows = await read_rows(path)
    assert rows == [{"email": "a@mabinicolleges.edu.ph", "first_name": "A"}]


def test_load_rows_keeps_int_cells_in_column_with_gaps(make_workbook):
    path = make_workbook(
        [
            {"email": "a@mabinicolleges.edu.ph", "student_no": 1001},
            {"email": "b@mabinicolleges.edu.ph"},
            {"email": "c@mabinicolleges.edu.ph", "student_no": 1003},
        ]
    )
    rows = load_rows(path)
    assert rows[0] == {"email": "a@mabinicolleges.edu.ph", "student_no": 1001}
    assert isinstance(rows[0]["student_no"], int)
    assert rows[1] == {"email": "b@mabinicolleges.edu.ph"}
    assert isinstance(rows[2]["student_no"], int)


def test_load_rows_keeps_cell_types(make_workbook):
    path = make_workbook([{"email": "a@mabinicolleges.edu.ph", "gpa": 1.75, "enrolled": True}])
    row = load_rows(path)[0]
    assert row["gpa"] == 1.75
    assert row["enrolled"] is True

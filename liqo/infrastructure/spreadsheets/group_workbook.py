"""Reading and writing the group import spreadsheet."""

from __future__ import annotations

import csv
import io
import logging
import re
import zipfile
from typing import Iterable, List, Optional, Sequence

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils.exceptions import InvalidFileException

from liqo.application.use_cases.group_import_use_cases import GroupImportRow, GroupSpreadsheet
from liqo.domain.errors import MembershipValidationError

logger = logging.getLogger(__name__)

TEMPLATE_FILENAME = "template_kelompok.xlsx"
TEMPLATE_HEADERS = ["No", "Nama Kelompok", "Deskripsi", "Email Mentor", "Mentee"]
SUPPORTED_EXTENSIONS = (".xlsx", ".csv")

HEADER_ALIASES = {
    "nama_kelompok": "group_name",
    "group_name": "group_name",
    "name": "group_name",
    "deskripsi": "description",
    "description": "description",
    "email_mentor": "mentor_email",
    "mentor_email": "mentor_email",
    "mentee": "mentees",
    "mentees": "mentees",
    "no": "no",
}

_MENTEE_SEPARATOR = re.compile(r"[;,]")


def normalise_header(value: object) -> str:
    """``'Nama Kelompok'`` -> ``'nama_kelompok'``."""
    text = _cell_text(value).lower()
    return re.sub(r"[^a-z0-9]+", "_", text).strip("_")


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _split_mentees(value: str) -> List[str]:
    return [part.strip() for part in _MENTEE_SEPARATOR.split(value) if part.strip()]


def _build_rows(header: Sequence[object], data: Iterable[Sequence[object]]) -> GroupSpreadsheet:
    columns = [HEADER_ALIASES.get(normalise_header(cell)) for cell in header]
    if "group_name" not in columns:
        raise MembershipValidationError.single(
            "file",
            "Missing required column 'Nama Kelompok'",
        )

    sheet = GroupSpreadsheet()
    # worksheet row numbers, the header being row 1
    for row_number, values in enumerate(data, start=2):
        record = {}
        for column, value in zip(columns, values):
            if column is not None:
                record[column] = _cell_text(value)
        if not any(text for key, text in record.items() if key != "no"):
            continue
        sheet.rows.append(
            GroupImportRow(
                row_number=row_number,
                group_name=record.get("group_name", ""),
                description=record.get("description", ""),
                mentor_email=record.get("mentor_email", ""),
                mentees=_split_mentees(record.get("mentees", "")),
            )
        )
    return sheet


def _read_xlsx(content: bytes) -> GroupSpreadsheet:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        logger.info("Rejected unreadable workbook: %s", exc)
        raise MembershipValidationError.single("file", "The file is not a readable .xlsx workbook") from exc

    try:
        rows = workbook.worksheets[0].iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            raise MembershipValidationError.single("file", "The file contains no data rows")
        return _build_rows(header, rows)
    finally:
        workbook.close()


def _read_csv(content: bytes) -> GroupSpreadsheet:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MembershipValidationError.single("file", "CSV files must be UTF-8 encoded") from exc

    rows = csv.reader(io.StringIO(text))
    header = next(rows, None)
    if header is None:
        raise MembershipValidationError.single("file", "The file contains no data rows")
    return _build_rows(header, rows)


def read_group_spreadsheet(
    filename: Optional[str],
    content: bytes,
    max_file_bytes: int,
) -> GroupSpreadsheet:
    """Decode an uploaded import file, rejecting it as a whole when unusable."""

    name = (filename or "").lower()
    if not name.endswith(SUPPORTED_EXTENSIONS):
        raise MembershipValidationError.single(
            "file",
            "Unsupported file type; upload an .xlsx or .csv file",
        )
    if not content:
        raise MembershipValidationError.single("file", "The uploaded file is empty")
    if len(content) > max_file_bytes:
        raise MembershipValidationError.single(
            "file",
            f"The file exceeds the {max_file_bytes // (1024 * 1024)} MB limit",
        )

    if name.endswith(".csv"):
        return _read_csv(content)
    return _read_xlsx(content)


def build_group_template() -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Kelompok"

    sheet.append(TEMPLATE_HEADERS)
    sheet.append([1, "Kelompok Tahfidz A", "Halaqah tahfidz pekan pertama", "mentor.ikhwan@example.com", ""])
    sheet.append([2, "Kelompok Kajian B", "", "mentor.akhwat@example.com", "Aisyah; Fatimah"])

    header_fill = PatternFill(start_color="059669", end_color="059669", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF")
    for cell in sheet[1]:
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center")

    for letter, width in zip("ABCDE", (6, 30, 40, 32, 40)):
        sheet.column_dimensions[letter].width = width

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


__all__ = [
    "TEMPLATE_FILENAME",
    "TEMPLATE_HEADERS",
    "build_group_template",
    "normalise_header",
    "read_group_spreadsheet",
]

"""Spreadsheet export: a list of records → a single-sheet ``.xlsx`` file.

Pure transform.  The HTTP layer turns the result into a download.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from io import BytesIO
from typing import Any, Iterable, Mapping, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter
from openpyxl.workbook.child import INVALID_TITLE_REGEX

from hrdash.common.constants import EXCEL_SHEET_NAME_MAX

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@dataclass(frozen=True)
class ExcelFile:
    filename: str
    content: bytes
    media_type: str = XLSX_MEDIA_TYPE

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'


def collect_headers(rows: Sequence[Mapping[str, Any]]) -> list[str]:
    """Union of keys across *rows*, in first-seen order."""
    headers: dict[str, None] = {}
    for row in rows:
        for key in row:
            headers.setdefault(key, None)
    return list(headers)


def sheet_title(name: str) -> str:
    """Excel-safe sheet name: forbidden characters become "-", then clipped."""
    title = INVALID_TITLE_REGEX.sub("-", name or "").strip()
    return title[:EXCEL_SHEET_NAME_MAX] or "Sheet1"


def _cell_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime) and value.tzinfo is not None:
        # openpyxl cannot write tz-aware datetimes
        return value.replace(tzinfo=None)
    if isinstance(value, (dict, list, tuple, set)):
        return str(value)
    return value


def export_to_excel(
    rows: Iterable[Mapping[str, Any]],
    file_name: str,
    sheet_name: str = "Sheet1",
) -> ExcelFile:
    """Write *rows* to one sheet named *sheet_name*; the file is ``<file_name>.xlsx``.

    Records may have different keys: the header row is the union of all keys
    and missing cells are left blank.
    """
    rows = list(rows)
    headers = collect_headers(rows)

    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title(sheet_name)

    if headers:
        ws.append(headers)
        header_font = Font(bold=True)
        for col in range(1, len(headers) + 1):
            cell = ws.cell(row=1, column=col)
            cell.font = header_font
            cell.alignment = Alignment(horizontal="center", vertical="center")
        ws.freeze_panes = "A2"

    for row in rows:
        ws.append([_cell_value(row.get(h)) for h in headers])

    # Column width from the longest rendered value, capped
    for col_idx, header in enumerate(headers, start=1):
        letter = get_column_letter(col_idx)
        longest = max(
            (len(str(cell.value)) for cell in ws[letter] if cell.value is not None),
            default=len(header),
        )
        ws.column_dimensions[letter].width = min(max(10, longest + 2), 55)

    buffer = BytesIO()
    wb.save(buffer)
    return ExcelFile(filename=f"{file_name}.xlsx", content=buffer.getvalue())

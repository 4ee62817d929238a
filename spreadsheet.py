from __future__ import annotations

import io
import zipfile
from datetime import date, datetime
from typing import Any, Iterable

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from errors import FormatError

UNREADABLE = (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError, TypeError)


def js_number(value: float | int) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (bool, int, float)):
        return js_number(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def is_blank_row(values: Iterable[Any]) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in values)


def _first_sheet_rows(data: bytes) -> list[tuple]:
    if not data:
        raise FormatError("The file is empty.")
    try:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except UNREADABLE as e:
        raise FormatError(f"Not a readable spreadsheet: {e}") from e
    try:
        if not wb.worksheets:
            return []
        ws = wb.worksheets[0]
        return [tuple(r) for r in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def read_array(data: bytes) -> list[list[Any]]:
    return [list(r) for r in _first_sheet_rows(data) if not is_blank_row(r)]


def records_from_array(rows: list[list[Any]]) -> tuple[list[str], list[dict[str, Any]]]:
    if not rows:
        return [], []
    header = [cell_text(h) if h is not None else "" for h in rows[0]]
    out: list[dict[str, Any]] = []
    for r in rows[1:]:
        rec: dict[str, Any] = {}
        for key, value in zip(header, r):
            if not key or value is None:
                continue
            rec[key] = value
        if rec:
            out.append(rec)
    return [h for h in header if h], out


def read_table(data: bytes) -> tuple[list[str], list[dict[str, Any]]]:
    return records_from_array(read_array(data))


def write_rows(headers: list[str], rows: Iterable[Iterable[Any]], sheet_title: str = "Sheet1") -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title
    ws.append(list(headers))
    for r in rows:
        ws.append(list(r))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()

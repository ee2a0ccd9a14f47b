from __future__ import annotations

import csv
import os
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font

from .company_manager import ensure_parent_dir


def _format_excel_safe_text(value: Any) -> str:
    s = "" if value is None else str(value)
    # Keep leading zeros on numeric-looking codes when Excel opens the CSV
    is_numeric_like = s.replace(".", "", 1).isdigit()
    if s.startswith("0") and len(s) > 1 and is_numeric_like and "." not in s:
        return f'="{s}"'
    return s


def _cell_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value
    return value


def _text_value(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return _format_excel_safe_text(value)


def export_csv(path: str, headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> str:
    ensure_parent_dir(path)
    # UTF-8 with BOM so Excel detects the encoding
    with open(path, mode="w", newline="", encoding="utf-8-sig") as f:
        writer = csv.writer(f, quoting=csv.QUOTE_ALL, lineterminator="\r\n")
        writer.writerow(list(headers))
        for row in rows:
            writer.writerow([_text_value(v) for v in row])
    return path


def export_xlsx(path: str, headers: Sequence[str], rows: Sequence[Sequence[Any]], sheet_title: str = "Export") -> str:
    ensure_parent_dir(path)
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title[:31] or "Export"
    ws.append(list(headers))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append([_cell_value(v) for v in row])
    wb.save(path)
    return path


def export_table(path: str, headers: Sequence[str], rows: Sequence[Sequence[Any]], sheet_title: str = "Export") -> str:
    """Write rows as .xlsx or .csv depending on the extension; no extension means CSV."""
    out_path = (path or "").strip()
    if not out_path:
        out_path = os.path.join(os.getcwd(), f"{sheet_title}.csv")
    _, ext = os.path.splitext(out_path.lower())
    if ext == ".xlsx":
        return export_xlsx(out_path, headers, rows, sheet_title)
    if not ext:
        out_path = out_path + ".csv"
    return export_csv(out_path, headers, rows)


def read_csv_rows(path: str) -> List[List[str]]:
    with open(path, newline="", encoding="utf-8-sig") as f:
        return [row for row in csv.reader(f)]

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path

from openpyxl import load_workbook

logger = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = {".xlsx", ".xlsm"}
TEXT_ENCODINGS = ("utf-8-sig", "cp1252")


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).replace("\t", " ").replace("\r", " ").replace("\n", " ").strip()


def read_workbook_text(path: Path, sheet_name: str | None = None) -> str:
    """Render one worksheet as tab-delimited text, one line per row."""

    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        if sheet_name is None:
            worksheet = workbook.active
        elif sheet_name in workbook.sheetnames:
            worksheet = workbook[sheet_name]
        else:
            raise ValueError(
                f"sheet '{sheet_name}' not found; available: {', '.join(workbook.sheetnames)}"
            )
        lines = []
        for row in worksheet.iter_rows(values_only=True):
            cells = [_cell_text(value) for value in row]
            if any(cells):
                lines.append("\t".join(cells))
    finally:
        workbook.close()
    return "\n".join(lines)


def read_text_file(path: Path) -> str:
    raw = path.read_bytes()
    for encoding in TEXT_ENCODINGS:
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            logger.debug("%s is not %s encoded", path, encoding)
    return raw.decode("latin-1")


def read_table_text(path: Path, sheet_name: str | None = None) -> str:
    """Read a delimited text file or a workbook sheet as delimited text."""

    if not path.exists():
        raise FileNotFoundError(path)
    if path.suffix.lower() in SPREADSHEET_SUFFIXES:
        return read_workbook_text(path, sheet_name)
    return read_text_file(path)

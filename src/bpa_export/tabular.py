from __future__ import annotations

import csv
import re


def split_lines(text: str) -> list[str]:
    """Non-blank lines of ``text``, surrounding whitespace of the block removed."""

    return [line for line in re.split(r"\r?\n", text.strip()) if line.strip()]


def detect_delimiter(line: str) -> str:
    if "\t" in line:
        return "\t"
    if ";" in line:
        return ";"
    return ","


def split_row(line: str, delimiter: str | None = None) -> list[str]:
    """Split one line into trimmed, unquoted cells.

    The delimiter is detected per line unless given. Quoted cells may contain
    the delimiter.
    """

    delimiter = delimiter or detect_delimiter(line)
    if delimiter == "\t":
        cells = line.split("\t")
    else:
        try:
            cells = next(csv.reader([line], delimiter=delimiter, skipinitialspace=True), [])
        except csv.Error:
            # Cells beyond the csv field size limit; split without quote handling.
            cells = line.split(delimiter)
    return [cell.strip() for cell in cells]


def detect_headers(text: str, has_header: bool = True) -> list[str]:
    lines = split_lines(text)
    if not lines:
        return []
    first = split_row(lines[0])
    if has_header:
        return first
    return [f"Dados {index + 1}" for index in range(len(first))]

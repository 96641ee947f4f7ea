"""Fixed-width record layouts of the BPA magnetic file.

Numeric fields are digits only, zero-padded on the left and truncated to
width. Alphabetic fields are uppercase ASCII without diacritics, padded with
spaces on the right and truncated to width.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Literal

from .normalizers import digits_only, strip_accents
from .pagination import LINES_PER_SHEET

FieldKind = Literal["literal", "numeric", "alpha", "alnum", "raw"]

LINE_SEPARATOR = "\r\n"
HEADER_MARKER = "#BPA#"
HEADER_TAG = "01"
CONSOLIDATED_TAG = "02"
INDIVIDUALIZED_TAG = "03"
CHECKSUM_MODULUS = 1111
PROCEDURE_WIDTH = 10


@dataclass(frozen=True)
class FieldSpec:
    name: str
    width: int
    kind: FieldKind
    default: str = ""


def pad_numeric(value: object, width: int) -> str:
    text = digits_only("" if value is None else str(value))
    return text.zfill(width)[:width]


def _ascii_upper(value: object) -> str:
    text = strip_accents(("" if value is None else str(value)).upper())
    text = re.sub(r"[\x00-\x1f\x7f]", " ", text)
    return text.encode("ascii", "ignore").decode("ascii")


def pad_alpha(value: object, width: int) -> str:
    return _ascii_upper(value)[:width].ljust(width)


def pad_alnum(value: object, width: int) -> str:
    return re.sub(r"[^A-Z0-9]", "", _ascii_upper(value))[:width].ljust(width)


def render_field(spec: FieldSpec, value: object) -> str:
    if spec.kind == "literal":
        return spec.default
    text = "" if value is None else str(value)
    if not text.strip():
        text = spec.default
    if spec.kind == "numeric":
        return pad_numeric(text, spec.width)
    if spec.kind == "alnum":
        return pad_alnum(text, spec.width)
    if spec.kind == "raw":
        return text[: spec.width].ljust(spec.width)
    return pad_alpha(text, spec.width)


def render_line(layout: Iterable[FieldSpec], values: Mapping[str, object]) -> str:
    return "".join(render_field(spec, values.get(spec.name)) for spec in layout)


def layout_width(layout: Iterable[FieldSpec]) -> int:
    return sum(spec.width for spec in layout)


def field_slices(layout: Iterable[FieldSpec]) -> dict[str, slice]:
    slices: dict[str, slice] = {}
    offset = 0
    for spec in layout:
        slices[spec.name] = slice(offset, offset + spec.width)
        offset += spec.width
    return slices


HEADER_LAYOUT: tuple[FieldSpec, ...] = (
    FieldSpec("tag", 2, "literal", HEADER_TAG),
    FieldSpec("marker", 5, "literal", HEADER_MARKER),
    FieldSpec("competency", 6, "numeric"),
    FieldSpec("line_count", 6, "numeric"),
    FieldSpec("sheet_count", 6, "numeric"),
    FieldSpec("checksum", 4, "numeric"),
    FieldSpec("responsible", 30, "alpha"),
    FieldSpec("acronym", 6, "alpha"),
    FieldSpec("cnpj", 14, "numeric"),
    FieldSpec("destination", 40, "alpha"),
    FieldSpec("indicator", 1, "raw"),
    FieldSpec("version", 10, "alpha"),
)

CONSOLIDATED_LAYOUT: tuple[FieldSpec, ...] = (
    FieldSpec("tag", 2, "literal", CONSOLIDATED_TAG),
    FieldSpec("cnes", 7, "numeric"),
    FieldSpec("competency", 6, "numeric"),
    FieldSpec("cbo", 6, "alpha"),
    FieldSpec("sheet", 3, "numeric"),
    FieldSpec("sequence", 2, "numeric"),
    FieldSpec("procedure", PROCEDURE_WIDTH, "numeric"),
    FieldSpec("age", 3, "numeric"),
    FieldSpec("quantity", 6, "numeric"),
    FieldSpec("origin", 3, "alpha"),
)

INDIVIDUALIZED_LAYOUT: tuple[FieldSpec, ...] = (
    FieldSpec("tag", 2, "literal", INDIVIDUALIZED_TAG),
    FieldSpec("cnes", 7, "numeric"),
    FieldSpec("competency", 6, "numeric"),
    FieldSpec("professional_cns", 15, "numeric"),
    FieldSpec("cbo", 6, "alpha"),
    FieldSpec("attendance_date", 8, "numeric"),
    FieldSpec("sheet", 3, "numeric"),
    FieldSpec("sequence", 2, "numeric"),
    FieldSpec("procedure", PROCEDURE_WIDTH, "numeric"),
    FieldSpec("patient_cns", 15, "numeric"),
    FieldSpec("sex", 1, "alpha"),
    FieldSpec("residence_ibge", 6, "numeric"),
    FieldSpec("cid", 4, "alpha"),
    FieldSpec("age", 3, "numeric"),
    FieldSpec("quantity", 6, "numeric"),
    FieldSpec("care_character", 2, "alpha", "01"),
    FieldSpec("authorization_number", 13, "numeric"),
    FieldSpec("origin", 3, "alpha"),
    FieldSpec("patient_name", 30, "alpha"),
    FieldSpec("birth_date", 8, "numeric"),
    FieldSpec("race", 2, "numeric", "03"),
    FieldSpec("ethnicity", 4, "numeric", "0000"),
    FieldSpec("nationality", 3, "numeric", "010"),
    FieldSpec("service", 3, "numeric"),
    FieldSpec("classification", 3, "numeric"),
    FieldSpec("team_sequence", 8, "numeric"),
    FieldSpec("team_area", 4, "numeric"),
    FieldSpec("company_cnpj", 14, "numeric"),
    FieldSpec("postal_code", 8, "numeric"),
    FieldSpec("street_type", 3, "literal", "081"),
    FieldSpec("street", 30, "alpha"),
    FieldSpec("complement", 10, "alpha"),
    FieldSpec("street_number", 5, "alnum", "00000"),
    FieldSpec("neighborhood", 30, "alpha"),
    FieldSpec("phone", 11, "alnum", "00000000000"),
    FieldSpec("email", 40, "alpha"),
    FieldSpec("reserved", 10, "alpha"),
)

DETAIL_LAYOUTS: dict[str, tuple[FieldSpec, ...]] = {
    CONSOLIDATED_TAG: CONSOLIDATED_LAYOUT,
    INDIVIDUALIZED_TAG: INDIVIDUALIZED_LAYOUT,
}

HEADER_WIDTH = layout_width(HEADER_LAYOUT)
CONSOLIDATED_WIDTH = layout_width(CONSOLIDATED_LAYOUT)
INDIVIDUALIZED_WIDTH = layout_width(INDIVIDUALIZED_LAYOUT)


def compute_checksum(items: Iterable[tuple[str, int]]) -> str:
    """Verification field: ``sum(procedure + quantity) % 1111 + 1111``."""

    total = 0
    for procedure, quantity in items:
        total += int(pad_numeric(procedure, PROCEDURE_WIDTH)) + int(quantity)
    return pad_numeric(total % CHECKSUM_MODULUS + CHECKSUM_MODULUS, 4)


@dataclass(frozen=True)
class DocumentValidationReport:
    """Outcome of re-reading a generated BPA file."""

    valid: bool
    errors: list[str]
    warnings: list[str]
    detail_tag: str | None
    detail_count: int
    sheet_count: int
    checksum: str | None


def _int_or_none(text: str) -> int | None:
    return int(text) if text.isdigit() else None


def validate_document(content: str) -> DocumentValidationReport:
    errors: list[str] = []
    warnings: list[str] = []

    if not content.endswith(LINE_SEPARATOR):
        errors.append("document must end with CRLF")
    body = content[: -len(LINE_SEPARATOR)] if content.endswith(LINE_SEPARATOR) else content
    lines = body.split(LINE_SEPARATOR) if body else []
    if any("\n" in line or "\r" in line for line in lines):
        errors.append("lines must be separated by CRLF only")
    if any(not line.isascii() for line in lines):
        errors.append("document must contain ASCII characters only")

    if not lines:
        errors.append("header line is required")
        return DocumentValidationReport(False, errors, warnings, None, 0, 0, None)

    header, details = lines[0], lines[1:]
    header_slices = field_slices(HEADER_LAYOUT)
    if len(header) != HEADER_WIDTH:
        errors.append(f"header line must have {HEADER_WIDTH} characters, got {len(header)}")
    if header[header_slices["tag"]] != HEADER_TAG:
        errors.append(f"header line must start with '{HEADER_TAG}'")
    if header[header_slices["marker"]] != HEADER_MARKER:
        errors.append(f"header line must carry marker '{HEADER_MARKER}'")

    detail_tags = {line[:2] for line in details}
    detail_tag = None
    if len(detail_tags) > 1:
        errors.append("detail lines mix record types: " + ", ".join(sorted(detail_tags)))
    elif detail_tags:
        detail_tag = next(iter(detail_tags))
        if detail_tag not in DETAIL_LAYOUTS:
            errors.append(f"unknown detail record type '{detail_tag}'")
            detail_tag = None
    if not details:
        warnings.append("document has no detail lines")

    competency = header[header_slices["competency"]]
    checksum_items: list[tuple[str, int]] = []
    sheets_by_context: dict[tuple[str, str], dict[int, int]] = {}
    if detail_tag is not None:
        layout = DETAIL_LAYOUTS[detail_tag]
        width = layout_width(layout)
        slices = field_slices(layout)
        for index, line in enumerate(details, start=2):
            if len(line) != width:
                errors.append(f"line {index} must have {width} characters, got {len(line)}")
                continue
            if line[slices["competency"]] != competency:
                errors.append(f"line {index} competency differs from header")
            quantity = _int_or_none(line[slices["quantity"]])
            sheet = _int_or_none(line[slices["sheet"]])
            if quantity is None or sheet is None:
                errors.append(f"line {index} has non-numeric quantity or sheet")
                continue
            checksum_items.append((line[slices["procedure"]], quantity))
            context = (line[slices["cnes"]], line[slices["competency"]])
            per_sheet = sheets_by_context.setdefault(context, {})
            per_sheet[sheet] = per_sheet.get(sheet, 0) + 1

    for context, per_sheet in sheets_by_context.items():
        for sheet, count in sorted(per_sheet.items()):
            if count > LINES_PER_SHEET:
                errors.append(f"sheet {sheet} of CNES {context[0]} holds {count} lines")
        if sorted(per_sheet) != list(range(1, len(per_sheet) + 1)):
            errors.append(f"sheets of CNES {context[0]} are not numbered 1..n")
    sheet_count = sum(max(per_sheet) for per_sheet in sheets_by_context.values())

    expected_lines = _int_or_none(header[header_slices["line_count"]])
    if expected_lines != len(lines):
        errors.append(f"header line count {expected_lines} differs from {len(lines)} lines")
    expected_sheets = _int_or_none(header[header_slices["sheet_count"]])
    if detail_tag is not None and expected_sheets != sheet_count:
        errors.append(f"header sheet count {expected_sheets} differs from {sheet_count}")

    checksum = None
    if detail_tag is not None:
        checksum = compute_checksum(checksum_items)
        if header[header_slices["checksum"]] != checksum:
            errors.append(
                f"header checksum {header[header_slices['checksum']]} differs from {checksum}"
            )

    return DocumentValidationReport(
        valid=not errors,
        errors=errors,
        warnings=warnings,
        detail_tag=detail_tag,
        detail_count=len(details),
        sheet_count=sheet_count,
        checksum=checksum,
    )

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from dataclasses import asdict, dataclass, replace

from .layout import (
    CONSOLIDATED_LAYOUT,
    HEADER_LAYOUT,
    INDIVIDUALIZED_LAYOUT,
    LINE_SEPARATOR,
    compute_checksum,
    render_line,
)
from .models import INDIVIDUALIZED, BpaHeader, BpaMode, BpaRecord
from .normalizers import digits_only, normalize_competency, normalize_full_date
from .pagination import paginate
from .procedures import FORBIDDEN_PHYSICIAN_PROCEDURE

logger = logging.getLogger(__name__)

EXCLUDED_PROCEDURES = frozenset({FORBIDDEN_PHYSICIAN_PROCEDURE})


@dataclass(frozen=True)
class BpaDocument:
    content: str
    mode: BpaMode
    competency: str
    record_count: int
    sheet_count: int
    checksum: str
    dropped_count: int
    filename: str

    @property
    def line_count(self) -> int:
        return self.record_count + 1


def suggested_filename(header: BpaHeader) -> str:
    return f"BPA_{header.competency}_{header.acronym or 'EXPORT'}.txt"


def select_records(
    records: Iterable[BpaRecord],
    competency: str,
    excluded_procedures: Collection[str] = EXCLUDED_PROCEDURES,
) -> list[BpaRecord]:
    """Keep valid records of ``competency`` with digits-only CNES and CBO."""

    selected: list[BpaRecord] = []
    for record in records:
        if record.competency != competency:
            continue
        if record.procedure in excluded_procedures or not record.is_valid:
            continue
        selected.append(replace(record, cnes=digits_only(record.cnes), cbo=digits_only(record.cbo)))
    return selected


def sort_key(record: BpaRecord, mode: BpaMode) -> tuple[str, ...]:
    key: tuple[str, ...] = (record.cnes, record.competency)
    if mode == INDIVIDUALIZED:
        key += (record.cbo, record.professional_cns)
    return key + (record.cbo, record.procedure, record.age, record.origin)


def _detail_values(record: BpaRecord, sheet: int, sequence: int) -> dict[str, object]:
    values: dict[str, object] = asdict(record)
    values["sheet"] = sheet
    values["sequence"] = sequence
    return values


def serialize_record(record: BpaRecord, mode: BpaMode, sheet: int, sequence: int) -> str:
    values = _detail_values(record, sheet, sequence)
    if mode != INDIVIDUALIZED:
        return render_line(CONSOLIDATED_LAYOUT, values)
    values["attendance_date"] = normalize_full_date(record.attendance_date, record.competency)
    values["birth_date"] = normalize_full_date(record.birth_date, record.competency)
    return render_line(INDIVIDUALIZED_LAYOUT, values)


def serialize_header(
    header: BpaHeader,
    competency: str,
    line_count: int,
    sheet_count: int,
    checksum: str,
) -> str:
    values: dict[str, object] = header.model_dump()
    values.update(
        competency=competency,
        line_count=line_count,
        sheet_count=sheet_count,
        checksum=checksum,
    )
    return render_line(HEADER_LAYOUT, values)


def generate_bpa_document(
    header: BpaHeader,
    records: Iterable[BpaRecord],
    mode: BpaMode,
    excluded_procedures: Collection[str] = EXCLUDED_PROCEDURES,
) -> BpaDocument:
    """Render the complete BPA file for one competency.

    Only records of the header competency are written. Counts and checksum
    in the header line are computed from the same records that are
    serialized.
    """

    all_records = list(records)
    competency = normalize_competency(header.competency)
    selected = select_records(all_records, competency, excluded_procedures)
    ordered = sorted(selected, key=lambda record: sort_key(record, mode))

    positions, sheet_count = paginate(record.context_key for record in ordered)
    detail_lines = [
        serialize_record(record, mode, sheet, sequence)
        for record, (sheet, sequence) in zip(ordered, positions, strict=True)
    ]
    checksum = compute_checksum((record.procedure, record.quantity) for record in ordered)
    header_line = serialize_header(
        header,
        competency=competency,
        line_count=len(detail_lines) + 1,
        sheet_count=sheet_count,
        checksum=checksum,
    )
    content = LINE_SEPARATOR.join([header_line, *detail_lines]) + LINE_SEPARATOR

    dropped_count = len(all_records) - len(ordered)
    if dropped_count:
        logger.info("%d records left out of the %s file for %s", dropped_count, mode, competency)
    logger.debug("generated %d lines over %d sheets", len(detail_lines) + 1, sheet_count)

    return BpaDocument(
        content=content,
        mode=mode,
        competency=competency,
        record_count=len(detail_lines),
        sheet_count=sheet_count,
        checksum=checksum,
        dropped_count=dropped_count,
        filename=suggested_filename(header),
    )

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date

from .lookups import clean_professional_key, patient_key
from .mapping import ColumnMapping
from .models import CONSOLIDATED, BpaMode, BpaRecord
from .normalizers import (
    digits_only,
    normalize_age,
    normalize_competency,
    normalize_full_date,
    normalize_sex,
)
from .procedures import (
    FORBIDDEN_PHYSICIAN_PROCEDURE,
    cbo_override,
    is_physician_header,
    normalize_procedure,
)
from .tabular import split_lines, split_row

logger = logging.getLogger(__name__)

DROP_MISSING_CNES = "missing_cnes"
DROP_MISSING_PROCEDURE = "missing_procedure"
DROP_INVALID_QUANTITY = "invalid_quantity"
DROP_COMPETENCY_MISMATCH = "competency_mismatch"
DROP_FORBIDDEN_PROCEDURE = "forbidden_procedure"

_PASSTHROUGH_FIELDS = (
    "residence_ibge",
    "cid",
    "care_character",
    "authorization_number",
    "patient_name",
    "race",
    "ethnicity",
    "nationality",
    "service",
    "classification",
    "team_sequence",
    "team_area",
    "company_cnpj",
    "postal_code",
    "complement",
    "street_number",
    "neighborhood",
    "phone",
    "email",
)


@dataclass(frozen=True)
class RowMappingResult:
    records: list[BpaRecord]
    total_rows: int
    dropped: dict[str, int] = field(default_factory=dict)

    @property
    def dropped_count(self) -> int:
        return sum(self.dropped.values())


def parse_quantity(value: str | None) -> int:
    """Blank means one unit; anything unreadable counts as zero."""

    text = (value or "").strip()
    if not text:
        return 1
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text.replace(",", ".")))
    except (ValueError, OverflowError):
        return 0


def _is_numeric_identifier(value: str) -> bool:
    return bool(re.fullmatch(r"[\d\s.\-/]+", value)) and bool(digits_only(value))


def _resolve_professional_cns(
    professional_cns: str,
    professional_name: str,
    professional_lookup: Mapping[str, str],
) -> str:
    if _is_numeric_identifier(professional_cns):
        return digits_only(professional_cns)
    for candidate in (professional_name, professional_cns):
        key = clean_professional_key(candidate)
        if key and professional_lookup.get(key):
            return professional_lookup[key]
    return digits_only(professional_cns)


def _map_line(
    cells: list[str],
    mapping: ColumnMapping,
    mode: BpaMode,
    procedure_header: str,
    occupation_override: str,
    professional_lookup: Mapping[str, str],
    patient_lookup: Mapping[str, str],
    today: date | None,
) -> BpaRecord:
    def value(field_name: str) -> str:
        return mapping.resolve(field_name, cells).strip()

    raw_competency = value("competency")
    competency = normalize_competency(raw_competency)
    origin = value("origin") or "BPA"
    common = {
        "cnes": digits_only(value("cnes")),
        "competency": competency,
        "cbo": occupation_override or value("cbo"),
        "procedure": normalize_procedure(value("procedure"), procedure_header),
        "age": normalize_age(value("age"), today=today),
        "quantity": parse_quantity(value("quantity")),
        "origin": origin,
    }
    if mode == CONSOLIDATED:
        return BpaRecord(**common)

    raw_birth_date = value("birth_date")
    if not common["age"] and raw_birth_date:
        common["age"] = normalize_age(raw_birth_date, today=today)

    professional_name = value("professional_name")
    raw_professional_cns = value("professional_cns")
    if not professional_name and not _is_numeric_identifier(raw_professional_cns):
        professional_name = raw_professional_cns

    patient_name = value("patient_name")
    street = value("street") or patient_lookup.get(patient_key(patient_name), "")
    extras = {name: value(name) for name in _PASSTHROUGH_FIELDS}
    extras.update(
        professional_name=professional_name,
        professional_cns=_resolve_professional_cns(
            raw_professional_cns, professional_name, professional_lookup
        ),
        attendance_date=normalize_full_date(
            value("attendance_date") or raw_competency, competency, today=today
        ),
        patient_cns=digits_only(value("patient_cns") or value("patient_cpf")),
        sex=normalize_sex(value("sex")),
        birth_date=(
            normalize_full_date(raw_birth_date, competency, today=today) if raw_birth_date else ""
        ),
        street=street,
    )
    return BpaRecord(**common, **extras)


def _rejection(
    record: BpaRecord,
    target_competency: str,
    physician_context: bool,
) -> str | None:
    if not record.cnes:
        return DROP_MISSING_CNES
    if not record.procedure.strip():
        return DROP_MISSING_PROCEDURE
    if record.quantity <= 0:
        return DROP_INVALID_QUANTITY
    if target_competency and record.competency != target_competency:
        return DROP_COMPETENCY_MISMATCH
    if physician_context and record.procedure == FORBIDDEN_PHYSICIAN_PROCEDURE:
        return DROP_FORBIDDEN_PROCEDURE
    return None


def map_rows(
    text: str,
    mapping: ColumnMapping,
    *,
    mode: BpaMode = CONSOLIDATED,
    has_header: bool = True,
    procedure_header: str = "",
    professional_lookup: Mapping[str, str] | None = None,
    patient_lookup: Mapping[str, str] | None = None,
    target_competency: str | None = None,
    today: date | None = None,
) -> RowMappingResult:
    """Build one canonical record per data line of ``text``.

    Malformed rows never raise; they produce partial values and are then
    kept or rejected by the validity gates. Rejections are counted per
    reason in the result.
    """

    lines = split_lines(text)
    data_lines = lines[1:] if has_header else lines
    target = normalize_competency(target_competency) if target_competency else ""
    occupation_override = cbo_override(procedure_header)
    physician_context = is_physician_header(procedure_header)

    records: list[BpaRecord] = []
    dropped: dict[str, int] = {}
    for line_number, line in enumerate(data_lines, start=2 if has_header else 1):
        record = _map_line(
            split_row(line),
            mapping,
            mode,
            procedure_header,
            occupation_override,
            professional_lookup or {},
            patient_lookup or {},
            today,
        )
        reason = _rejection(record, target, physician_context)
        if reason is not None:
            dropped[reason] = dropped.get(reason, 0) + 1
            logger.debug("line %d dropped: %s", line_number, reason)
            continue
        records.append(record)

    logger.info(
        "mapped %d of %d rows (%s)",
        len(records),
        len(data_lines),
        mode,
    )
    return RowMappingResult(records=records, total_rows=len(data_lines), dropped=dropped)

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date

from .consolidation import consolidate_records
from .export import BpaDocument, generate_bpa_document
from .mapping import build_column_mapping, column_indices_from_map, suggest_column_indices
from .models import BpaHeader
from .profile import ExportProfile
from .row_mapper import RowMappingResult, map_rows
from .tabular import detect_headers


@dataclass(frozen=True)
class ExportRun:
    document: BpaDocument
    mapping_result: RowMappingResult
    headers: list[str]
    procedure_header: str
    consolidated_count: int


def _procedure_header(profile: ExportProfile, headers: list[str], index: int | None) -> str:
    if profile.procedure_header is not None:
        return profile.procedure_header
    if index is not None and 0 <= index < len(headers):
        return headers[index]
    return ""


def run_export(
    text: str,
    profile: ExportProfile,
    header: BpaHeader,
    professional_lookup: Mapping[str, str] | None = None,
    patient_lookup: Mapping[str, str] | None = None,
    today: date | None = None,
) -> ExportRun:
    """Map, consolidate and render ``text`` with the settings of ``profile``.

    Without a column map the columns are guessed from the header row.
    """

    headers = detect_headers(text, has_header=profile.has_header)
    if profile.column_map:
        indices = column_indices_from_map(profile.column_map, headers)
    else:
        indices = suggest_column_indices(headers) if profile.has_header else {}
    mapping = build_column_mapping(indices, profile.defaults)
    procedure_header = _procedure_header(profile, headers, indices.get("procedure"))

    mapping_result = map_rows(
        text,
        mapping,
        mode=profile.mode,
        has_header=profile.has_header,
        procedure_header=procedure_header,
        professional_lookup=professional_lookup,
        patient_lookup=patient_lookup,
        target_competency=header.competency,
        today=today,
    )
    records = mapping_result.records
    if profile.consolidate:
        records = consolidate_records(records, profile.mode)

    document = generate_bpa_document(header, records, profile.mode)
    return ExportRun(
        document=document,
        mapping_result=mapping_result,
        headers=headers,
        procedure_header=procedure_header,
        consolidated_count=len(records),
    )

"""Core package for BPA-C / BPA-I magnetic file export."""

from .consolidation import consolidate_records, consolidation_key
from .export import BpaDocument, generate_bpa_document, serialize_record, suggested_filename
from .layout import (
    CONSOLIDATED_WIDTH,
    HEADER_WIDTH,
    INDIVIDUALIZED_WIDTH,
    DocumentValidationReport,
    compute_checksum,
    validate_document,
)
from .lookups import build_patient_address_lookup, build_professional_lookup
from .mapping import (
    ColumnMapping,
    Fixed,
    Mapped,
    build_column_mapping,
    build_profile_template,
    suggest_column_indices,
    suggest_column_map,
)
from .models import SUPPORTED_MODES, BpaHeader, BpaMode, BpaRecord, default_header
from .normalizers import (
    normalize_age,
    normalize_competency,
    normalize_full_date,
    normalize_key,
    normalize_sex,
)
from .pagination import LINES_PER_SHEET, PaginationState, paginate
from .pipeline import ExportRun, run_export
from .procedures import cbo_override, lookup_procedure, normalize_procedure, procedure_context
from .profile import ExportProfile, load_export_profile
from .row_mapper import RowMappingResult, map_rows
from .sources import read_table_text

__all__ = [
    "BpaHeader",
    "BpaMode",
    "BpaRecord",
    "SUPPORTED_MODES",
    "default_header",
    "normalize_key",
    "normalize_competency",
    "normalize_age",
    "normalize_sex",
    "normalize_full_date",
    "normalize_procedure",
    "lookup_procedure",
    "procedure_context",
    "cbo_override",
    "Mapped",
    "Fixed",
    "ColumnMapping",
    "build_column_mapping",
    "suggest_column_indices",
    "suggest_column_map",
    "build_profile_template",
    "build_professional_lookup",
    "build_patient_address_lookup",
    "RowMappingResult",
    "map_rows",
    "consolidation_key",
    "consolidate_records",
    "LINES_PER_SHEET",
    "PaginationState",
    "paginate",
    "HEADER_WIDTH",
    "CONSOLIDATED_WIDTH",
    "INDIVIDUALIZED_WIDTH",
    "compute_checksum",
    "DocumentValidationReport",
    "validate_document",
    "BpaDocument",
    "serialize_record",
    "suggested_filename",
    "generate_bpa_document",
    "ExportProfile",
    "load_export_profile",
    "read_table_text",
    "ExportRun",
    "run_export",
]

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from .normalizers import strip_accents

RECORD_FIELDS: tuple[str, ...] = (
    "cnes",
    "competency",
    "cbo",
    "procedure",
    "age",
    "quantity",
    "origin",
    "professional_name",
    "professional_cns",
    "attendance_date",
    "patient_cns",
    "sex",
    "residence_ibge",
    "cid",
    "care_character",
    "authorization_number",
    "patient_name",
    "birth_date",
    "race",
    "ethnicity",
    "nationality",
    "service",
    "classification",
    "team_sequence",
    "team_area",
    "company_cnpj",
    "postal_code",
    "street",
    "complement",
    "street_number",
    "neighborhood",
    "phone",
    "email",
)

# Source-only fields: read from the table but not written as-is.
AUXILIARY_FIELDS: tuple[str, ...] = ("patient_cpf",)

MAPPABLE_FIELDS: tuple[str, ...] = RECORD_FIELDS + AUXILIARY_FIELDS

DEFAULT_FIELD_VALUES: dict[str, str] = {
    "quantity": "1",
    "origin": "BPA",
    "race": "03",
    "nationality": "010",
    "care_character": "01",
}


@dataclass(frozen=True)
class Mapped:
    """Read the value from a column; ``fallback`` fills empty cells."""

    index: int
    fallback: str = ""


@dataclass(frozen=True)
class Fixed:
    """Use the same value for every row."""

    value: str = ""


ColumnSource = Mapped | Fixed


def _unquote(cell: str) -> str:
    value = cell.strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1].replace('""', '"')
    return value


@dataclass(frozen=True)
class ColumnMapping:
    sources: Mapping[str, ColumnSource] = field(default_factory=dict)

    def source(self, field_name: str) -> ColumnSource:
        return self.sources.get(field_name, Fixed(""))

    def is_mapped(self, field_name: str) -> bool:
        return isinstance(self.source(field_name), Mapped)

    def resolve(self, field_name: str, cells: Sequence[str]) -> str:
        source = self.source(field_name)
        if isinstance(source, Fixed):
            return source.value
        if 0 <= source.index < len(cells):
            value = _unquote(cells[source.index])
            if value:
                return value
        return source.fallback


def build_column_mapping(
    column_indices: Mapping[str, int | None],
    defaults: Mapping[str, str] | None = None,
) -> ColumnMapping:
    """Resolve every field to a column or a fixed value, once."""

    unknown = sorted(set(column_indices) - set(MAPPABLE_FIELDS))
    if unknown:
        raise ValueError(f"unknown mapping fields: {', '.join(unknown)}")

    values = dict(DEFAULT_FIELD_VALUES)
    for key, value in (defaults or {}).items():
        if key not in MAPPABLE_FIELDS:
            raise ValueError(f"unknown default field: {key}")
        values[key] = "" if value is None else str(value).strip()

    sources: dict[str, ColumnSource] = {}
    for field_name in MAPPABLE_FIELDS:
        index = column_indices.get(field_name)
        fallback = values.get(field_name, "")
        if index is None:
            sources[field_name] = Fixed(fallback)
            continue
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise ValueError(f"column index for '{field_name}' must be a non-negative integer")
        sources[field_name] = Mapped(index, fallback)
    return ColumnMapping(sources)


def normalize_header(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", strip_accents(text.strip().lower()))


def suggest_column_indices(headers: Sequence[str]) -> dict[str, int]:
    """Guess which column feeds each field from the header texts.

    Later headers win for most fields. The first ``BPA ... MEDICO`` header
    locks the procedure column.
    """

    result: dict[str, int] = {}
    procedure_locked = False

    for index, header in enumerate(headers):
        h = normalize_header(header)
        if not h:
            continue

        if "cnes" in h:
            result["cnes"] = index

        if h == "jdata":
            result["competency"] = index
        elif "data" in h and "atend" in h:
            result["attendance_date"] = index
        elif "competency" not in result and "data" in h and "nasc" not in h:
            result["competency"] = index
        elif "competencia" in h:
            result["competency"] = index

        if "cbo" in h or "ocupacao" in h:
            result["cbo"] = index

        if not procedure_locked and "medico" in h and "bpa" in h:
            result["procedure"] = index
            procedure_locked = True
        elif not procedure_locked and "procedure" not in result:
            if ("cod" in h and "proc" in h) or "procedimento" in h:
                result["procedure"] = index

        if "datadenascimento" in h or "dtnasc" in h or "nascimento" in h:
            result["birth_date"] = index
        if "idade" in h and "quantidade" not in h:
            result["age"] = index
        if "quantidade" in h or "qtd" in h:
            result["quantity"] = index
        if "origem" in h or "fonte" in h:
            result["origin"] = index

        if "nome" in h and ("paciente" in h or "usuario" in h or h == "nome"):
            result["patient_name"] = index

        if "profissional" in h or ("medico" in h and "bpa" not in h and "proc" not in h):
            if "nome" in h or ("cns" not in h and "cartao" not in h):
                result["professional_name"] = index
            if "cns" in h or "cartao" in h:
                result["professional_cns"] = index
        if "cns" in h or "cartao" in h:
            if "paciente" in h:
                result["patient_cns"] = index
            elif "professional_cns" not in result:
                result["professional_cns"] = index

        if "cpf" in h and "medico" not in h and "prof" not in h:
            result["patient_cpf"] = index
        if "sexo" in h or "genero" in h:
            result["sex"] = index
        if "raca" in h or h.startswith("cor"):
            result["race"] = index
        if "municipio" in h or "ibge" in h:
            result["residence_ibge"] = index
        if "telefone" in h or "celular" in h:
            result["phone"] = index
        if "endereco" in h or "logradouro" in h or "rua" in h:
            result["street"] = index
        if h == "cid" or h.startswith("cid10"):
            result["cid"] = index
        if h == "cep":
            result["postal_code"] = index
        if "bairro" in h:
            result["neighborhood"] = index
        if "email" in h:
            result["email"] = index

    return result


def suggest_column_map(headers: Sequence[str]) -> dict[str, str]:
    """Return ``{header: field}`` for the suggested columns."""

    indices = suggest_column_indices(headers)
    result = {headers[index]: field_name for field_name, index in indices.items()}
    return dict(sorted(result.items(), key=lambda item: item[0].lower()))


def column_indices_from_map(
    column_map: Mapping[object, str],
    headers: Sequence[str],
) -> dict[str, int]:
    """Translate a ``{header or index: field}`` map to ``{field: index}``."""

    lookup: dict[str, int] = {}
    for index, header in enumerate(headers):
        lookup.setdefault(normalize_header(header), index)

    indices: dict[str, int] = {}
    for source, target in column_map.items():
        if target not in MAPPABLE_FIELDS:
            raise ValueError(f"column_map targets unknown field '{target}'")
        if target in indices:
            raise ValueError(f"column_map has ambiguous duplicate target '{target}'")
        if isinstance(source, int) and not isinstance(source, bool):
            indices[target] = source
            continue
        source_text = str(source)
        index = lookup.get(normalize_header(source_text))
        if index is None and source_text.strip().isdigit():
            index = int(source_text.strip())
        if index is None:
            raise ValueError(f"column '{source_text}' is not present in the table headers")
        indices[target] = index
    return indices


def build_profile_template(
    profile_name: str,
    headers: Sequence[str],
    mode: str = "BPA-C",
) -> dict[str, object]:
    column_map = suggest_column_map(headers)
    procedure_header = next(
        (header for header, target in column_map.items() if target == "procedure"), ""
    )
    return {
        "version": 1,
        "profiles": {
            profile_name: {
                "meta": {"generated_from": {"headers": list(headers)}},
                "mode": mode,
                "consolidate": mode == "BPA-C",
                "has_header": True,
                "procedure_header": procedure_header,
                "column_map": column_map,
                "defaults": dict(DEFAULT_FIELD_VALUES),
            }
        },
    }

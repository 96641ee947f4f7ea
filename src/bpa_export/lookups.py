"""Auxiliary name-keyed tables used to fill individualized records.

Both tables come from secondary sheets of the source spreadsheet: one lists
professionals with their CNS, the other lists patients with their address.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence

from .mapping import normalize_header
from .normalizers import digits_only, normalize_key
from .tabular import split_lines, split_row

_TITLE_PREFIX = re.compile(r"^(?:DRA|DR|ENF|MEDICO|MED)\.?\s+")


def clean_professional_key(name: str | None) -> str:
    """Uppercase, strip diacritics and leading titles such as ``DR``."""

    key = normalize_key(name)
    return _TITLE_PREFIX.sub("", key).strip()


def patient_key(name: str | None) -> str:
    return normalize_key(name)


def _find_column(
    headers: Sequence[str], tokens: Sequence[str], exclude: Sequence[str] = ()
) -> int | None:
    for index, header in enumerate(headers):
        normalized = normalize_header(header)
        if any(token in normalized for token in exclude):
            continue
        if any(token in normalized for token in tokens):
            return index
    return None


def _build_lookup(
    text: str,
    key_tokens: Sequence[str],
    value_tokens: Sequence[str],
    key_func: Callable[[str], str],
    value_func: Callable[[str], str],
) -> dict[str, str]:
    lines = split_lines(text)
    if len(lines) < 2:
        return {}

    headers = split_row(lines[0])
    key_index = _find_column(headers, key_tokens, exclude=value_tokens)
    value_index = _find_column(headers, value_tokens)
    if key_index is None or value_index is None:
        return {}

    lookup: dict[str, str] = {}
    for line in lines[1:]:
        cells = split_row(line)
        if max(key_index, value_index) >= len(cells):
            continue
        key = key_func(cells[key_index])
        value = value_func(cells[value_index])
        if key and value:
            lookup[key] = value
    return lookup


def build_professional_lookup(text: str) -> dict[str, str]:
    """Professional name -> CNS (digits only)."""

    return _build_lookup(
        text,
        key_tokens=("nome", "profissional", "medico"),
        value_tokens=("cns", "cartao", "sus"),
        key_func=clean_professional_key,
        value_func=digits_only,
    )


def build_patient_address_lookup(text: str) -> dict[str, str]:
    """Patient name -> street address (uppercase)."""

    return _build_lookup(
        text,
        key_tokens=("nome", "paciente"),
        value_tokens=("endereco", "logradouro", "rua"),
        key_func=patient_key,
        value_func=lambda value: value.strip().upper(),
    )

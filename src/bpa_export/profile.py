from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .mapping import MAPPABLE_FIELDS
from .models import SUPPORTED_MODES, BpaHeader, BpaMode, default_header

PROFILE_DOCUMENT_VERSION = 1


@dataclass(frozen=True)
class ExportProfile:
    """Import and header settings for one source spreadsheet."""

    name: str = "default"
    mode: BpaMode = "BPA-C"
    consolidate: bool = True
    has_header: bool = True
    procedure_header: str | None = None
    column_map: dict[object, str] = field(default_factory=dict)
    defaults: dict[str, str] = field(default_factory=dict)
    header: dict[str, Any] = field(default_factory=dict)

    def build_header(self, **overrides: Any) -> BpaHeader:
        values = default_header().model_dump()
        values.update(self.header)
        values.update({key: value for key, value in overrides.items() if value is not None})
        return BpaHeader(**values)


def load_profile_document(path: Path) -> dict[str, Any]:
    """Read a YAML or JSON export profile document and check its version.

    An empty file is an empty document. Documents without ``version`` are
    read as the current version.
    """

    if not path.exists():
        raise FileNotFoundError(path)

    text = path.read_text(encoding="utf-8")
    document = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    document = {} if document is None else document
    if not isinstance(document, dict):
        raise ValueError(f"{path.name}: export profile document must be a mapping")

    version = document.get("version", PROFILE_DOCUMENT_VERSION)
    if version != PROFILE_DOCUMENT_VERSION:
        raise ValueError(f"{path.name}: unsupported export profile version {version!r}")
    return document


def select_profile(
    document: dict[str, Any], profile_name: str | None = None
) -> tuple[str, dict[str, Any]]:
    """Pick ``(name, settings)`` from a profile document.

    A document without ``profiles`` is itself a single profile named
    ``default``. Otherwise the profile is chosen by ``profile_name``, then by
    the document's ``default_profile``, then by being the only entry.
    """

    if "profiles" not in document:
        if profile_name is not None:
            raise ValueError(f"profile '{profile_name}' requested from a single-profile document")
        return "default", document

    profiles = document["profiles"]
    if not isinstance(profiles, dict) or not profiles:
        raise ValueError("'profiles' must be a non-empty mapping of profile name to settings")

    names = ", ".join(sorted(str(key) for key in profiles))
    name = profile_name or document.get("default_profile")
    if name is None:
        if len(profiles) > 1:
            raise ValueError(f"several export profiles defined; choose one of: {names}")
        name = next(iter(profiles))

    settings = profiles.get(name)
    if not isinstance(settings, dict):
        raise ValueError(f"export profile '{name}' is not present; available: {names}")
    return str(name), settings


def _parse_column_map(payload: object) -> dict[object, str]:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValueError("column_map must be an object")

    result: dict[object, str] = {}
    for source, target in payload.items():
        if not isinstance(target, str) or target.strip() not in MAPPABLE_FIELDS:
            raise ValueError(f"column_map entry '{source}' targets unknown field '{target}'")
        if isinstance(source, str):
            if not source.strip():
                raise ValueError("column_map entries must have a non-empty source")
            source = source.strip()
        elif not isinstance(source, int) or isinstance(source, bool):
            raise ValueError("column_map keys must be header names or column indices")
        result[source] = target.strip()
    return result


def _parse_defaults(payload: object) -> dict[str, str]:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValueError("defaults must be an object")

    result: dict[str, str] = {}
    for field_name, value in payload.items():
        if field_name not in MAPPABLE_FIELDS:
            raise ValueError(f"defaults contains unknown field '{field_name}'")
        result[field_name] = "" if value is None else str(value)
    return result


def parse_export_profile(name: str, payload: dict[str, Any]) -> ExportProfile:
    mode = payload.get("mode", "BPA-C")
    if mode not in SUPPORTED_MODES:
        raise ValueError("mode must be one of: " + ", ".join(SUPPORTED_MODES))

    header = payload.get("header") or {}
    if not isinstance(header, dict):
        raise ValueError("header must be an object")

    procedure_header = payload.get("procedure_header")
    return ExportProfile(
        name=name,
        mode=mode,
        consolidate=bool(payload.get("consolidate", mode == "BPA-C")),
        has_header=bool(payload.get("has_header", True)),
        procedure_header=None if procedure_header is None else str(procedure_header),
        column_map=_parse_column_map(payload.get("column_map")),
        defaults=_parse_defaults(payload.get("defaults")),
        header={
            str(key): value if isinstance(value, str) else str(value)
            for key, value in header.items()
            if value is not None
        },
    )


def load_export_profile(path: Path, profile_name: str | None = None) -> ExportProfile:
    name, payload = select_profile(load_profile_document(path), profile_name)
    return parse_export_profile(name, payload)

from __future__ import annotations

from bpa_export.procedures import (
    NURSE_CBO,
    PHYSICIAN_CBO,
    PROCEDURE_DICTIONARIES,
    TECHNICIAN_CBO,
    cbo_override,
    is_physician_header,
    lookup_procedure,
    normalize_procedure,
    procedure_context,
)


def test_same_description_resolves_by_professional_category() -> None:
    assert normalize_procedure("SUTURA", "BPA ENFERMAGEM") == "0401010066"
    assert normalize_procedure("SUTURA", "BPA MEDICO") == "0401010058"
    assert normalize_procedure("  sutura ", "BPA MÉDICO") == "0401010058"


def test_unknown_description_in_context_uses_other_dictionaries() -> None:
    assert lookup_procedure("RETIRADA DE PONTOS", "physician") == "0301100152"
    assert lookup_procedure("PROCEDIMENTO INEXISTENTE", "physician") is None


def test_codes_pass_through_as_digits() -> None:
    assert normalize_procedure("03.01.10.001-2", "BPA MEDICO") == "0301100012"
    assert normalize_procedure("0211020036") == "0211020036"
    assert normalize_procedure("") == ""
    assert normalize_procedure("texto livre") == ""


def test_every_dictionary_code_has_ten_digits() -> None:
    for dictionary in PROCEDURE_DICTIONARIES.values():
        for description, code in dictionary.items():
            assert len(code) == 10 and code.isdigit(), description


def test_procedure_context_from_header() -> None:
    assert procedure_context("BPA TÉCNICO DE ENFERMAGEM") == "technician"
    assert procedure_context("BPA AUXILIAR") == "technician"
    assert procedure_context("BPA ENFERMAGEM") == "nursing"
    assert procedure_context("BPA MEDICO") == "physician"
    assert procedure_context("") == "physician"


def test_cbo_override_requires_bpa_header() -> None:
    assert cbo_override("BPA TEC ENFERMAGEM") == TECHNICIAN_CBO
    assert cbo_override("BPA ENFERMAGEM") == NURSE_CBO
    assert cbo_override("bpa médico") == PHYSICIAN_CBO
    assert cbo_override("PROCEDIMENTO MEDICO") == ""
    assert cbo_override("BPA") == ""
    assert is_physician_header("BPA MEDICO")
    assert not is_physician_header("BPA ENFERMAGEM")

from __future__ import annotations

from datetime import date

from bpa_export.layout import validate_document
from bpa_export.models import BpaHeader
from bpa_export.pipeline import run_export
from bpa_export.profile import ExportProfile

HEADER = BpaHeader(competency="202309", responsible="SMS", acronym="SMS", cnpj="11306581000100")


def _rows(count: int, cbo: str = "515105") -> list[str]:
    return [f"1234567;25/09/2023;{cbo};0401010058;{20 + index % 2};1" for index in range(count)]


def test_run_export_guesses_columns_and_consolidates() -> None:
    text = "\n".join(["CNES;Data;CBO;Procedimento;Idade;Quantidade", *_rows(6)])

    run = run_export(text, ExportProfile(), HEADER)

    assert run.mapping_result.total_rows == 6
    assert run.consolidated_count == 2
    assert run.procedure_header == "Procedimento"
    assert run.document.record_count == 2
    assert sorted(record.quantity for record in run.mapping_result.records) == [1] * 6
    assert validate_document(run.document.content).valid


def test_run_export_uses_profile_column_map_and_header_context() -> None:
    text = "\n".join(
        [
            "Unidade;Mes;BPA ENFERMAGEM;Qtd",
            "1234567;09/2023;SUTURA;2",
            "1234567;09/2023;SUTURA;3",
            "1234567;10/2023;SUTURA;3",
        ]
    )
    profile = ExportProfile(
        column_map={"Unidade": "cnes", "Mes": "competency", "BPA ENFERMAGEM": "procedure", "Qtd": "quantity"},
    )

    run = run_export(text, profile, HEADER)

    assert run.procedure_header == "BPA ENFERMAGEM"
    assert run.mapping_result.dropped == {"competency_mismatch": 1}
    assert run.document.record_count == 1
    detail = run.document.content.split("\r\n")[1]
    assert detail[15:21] == "223505"
    assert detail[26:36] == "0401010066"
    assert detail[39:45] == "000005"


def test_run_export_individualized_keeps_every_row() -> None:
    text = "\n".join(
        [
            "CNES;Competencia;CNS Profissional;Procedimento;Nome do Paciente;Data de Nascimento",
            "1234567;202309;700000000000001;0301010072;Maria Souza;10/05/1980",
            "1234567;202309;700000000000001;0301010072;Maria Souza;10/05/1980",
        ]
    )
    profile = ExportProfile(mode="BPA-I", consolidate=False, defaults={"cbo": "225125"})

    run = run_export(text, profile, HEADER, today=date(2024, 1, 1))

    assert run.document.record_count == 2
    assert run.mapping_result.records[0].age == "43"
    assert validate_document(run.document.content).detail_tag == "03"

from __future__ import annotations

from datetime import date

from bpa_export.mapping import build_column_mapping
from bpa_export.row_mapper import (
    DROP_COMPETENCY_MISMATCH,
    DROP_FORBIDDEN_PROCEDURE,
    DROP_INVALID_QUANTITY,
    DROP_MISSING_CNES,
    DROP_MISSING_PROCEDURE,
    map_rows,
    parse_quantity,
)

TODAY = date(2024, 1, 1)

CONSOLIDATED_INDICES = {
    "cnes": 0,
    "competency": 1,
    "cbo": 2,
    "procedure": 3,
    "age": 4,
    "quantity": 5,
}


def _consolidated_text(*rows: str) -> str:
    return "\n".join(["CNES;Competencia;CBO;Procedimento;Idade;Quantidade", *rows])


def test_parse_quantity() -> None:
    assert parse_quantity("") == 1
    assert parse_quantity(None) == 1
    assert parse_quantity("3") == 3
    assert parse_quantity("2,0") == 2
    assert parse_quantity("abc") == 0
    assert parse_quantity("1e999") == 0
    assert parse_quantity("inf") == 0
    assert parse_quantity("-inf") == 0


def test_map_rows_builds_consolidated_records() -> None:
    result = map_rows(
        _consolidated_text("1234567;09/2023;515105;0401010058;45;2", "1234567;202309;515105;SUTURA;;"),
        build_column_mapping(CONSOLIDATED_INDICES),
        procedure_header="Procedimento",
    )

    assert result.total_rows == 2
    assert result.dropped_count == 0
    first, second = result.records
    assert first.cnes == "1234567"
    assert first.competency == "202309"
    assert first.cbo == "515105"
    assert first.procedure == "0401010058"
    assert first.age == "45"
    assert first.quantity == 2
    assert first.origin == "BPA"
    assert first.patient_name == ""
    assert second.procedure == "0401010058"
    assert second.quantity == 1


def test_map_rows_counts_rejections_per_reason() -> None:
    result = map_rows(
        _consolidated_text(
            ";202309;515105;0401010058;45;1",
            "1234567;202309;515105;;45;1",
            "1234567;202309;515105;0401010058;45;abc",
            "1234567;202310;515105;0401010058;45;1",
            "1234567;202309;515105;0401010058;45;1",
        ),
        build_column_mapping(CONSOLIDATED_INDICES),
        target_competency="09/2023",
    )

    assert len(result.records) == 1
    assert result.dropped == {
        DROP_MISSING_CNES: 1,
        DROP_MISSING_PROCEDURE: 1,
        DROP_INVALID_QUANTITY: 1,
        DROP_COMPETENCY_MISMATCH: 1,
    }


def test_bpa_header_overrides_occupation_code() -> None:
    text = _consolidated_text("1234567;202309;999999;SUTURA;30;1")
    mapping = build_column_mapping(CONSOLIDATED_INDICES)

    nursing = map_rows(text, mapping, procedure_header="BPA ENFERMAGEM").records[0]
    technician = map_rows(text, mapping, procedure_header="BPA TEC ENFERMAGEM").records[0]
    plain = map_rows(text, mapping, procedure_header="Procedimento").records[0]

    assert (nursing.cbo, nursing.procedure) == ("223505", "0401010066")
    assert technician.cbo == "322205"
    assert (plain.cbo, plain.procedure) == ("999999", "0401010058")


def test_medication_administration_is_dropped_in_physician_context() -> None:
    text = _consolidated_text(
        "1234567;202309;225125;0301100012;30;5",
        "1234567;202309;225125;ADMINISTRACAO DE MEDICAMENTOS NA ATENCAO ESPECIALIZADA;30;1",
        "1234567;202309;225125;0301010072;30;1",
    )
    mapping = build_column_mapping(CONSOLIDATED_INDICES)

    physician = map_rows(text, mapping, procedure_header="BPA MEDICO")
    nursing = map_rows(text, mapping, procedure_header="BPA ENFERMAGEM")

    assert [record.procedure for record in physician.records] == ["0301010072"]
    assert physician.dropped == {DROP_FORBIDDEN_PROCEDURE: 2}
    assert len(nursing.records) == 3


def test_map_rows_without_header_row_reads_every_line() -> None:
    result = map_rows(
        "1234567;202309;515105;0401010058;45;1\n7654321;202309;515105;0401010058;45;1",
        build_column_mapping(CONSOLIDATED_INDICES),
        has_header=False,
    )
    assert [record.cnes for record in result.records] == ["1234567", "7654321"]


def test_map_rows_fills_individualized_fields_from_lookups() -> None:
    text = "\n".join(
        [
            "CNES;Competencia;Profissional;Procedimento;Paciente;CNS Paciente;Sexo;Nascimento;Atendimento",
            "1234567;09/2023;Dr. João Silva;0301010072;Maria Souza;898 0012 3456 7890;Feminino;10/05/1980;15/09/2023",
            "1234567;09/2023;700000000000002;0301010072;Ana Lima;;M;;",
        ]
    )
    mapping = build_column_mapping(
        {
            "cnes": 0,
            "competency": 1,
            "professional_cns": 2,
            "procedure": 3,
            "patient_name": 4,
            "patient_cns": 5,
            "sex": 6,
            "birth_date": 7,
            "attendance_date": 8,
        },
        {"cbo": "225125"},
    )

    result = map_rows(
        text,
        mapping,
        mode="BPA-I",
        professional_lookup={"JOAO SILVA": "700000000000001"},
        patient_lookup={"MARIA SOUZA": "RUA DAS FLORES 10"},
        today=TODAY,
    )

    first, second = result.records
    assert first.cbo == "225125"
    assert first.professional_name == "Dr. João Silva"
    assert first.professional_cns == "700000000000001"
    assert first.patient_cns == "898001234567890"
    assert first.sex == "F"
    assert first.birth_date == "19800510"
    assert first.attendance_date == "20230915"
    assert first.age == "43"
    assert first.street == "RUA DAS FLORES 10"
    assert first.race == "03"
    assert first.nationality == "010"

    assert second.professional_cns == "700000000000002"
    assert second.professional_name == ""
    assert second.birth_date == ""
    assert second.age == ""
    assert second.street == ""
    assert second.attendance_date == "20230901"


def test_patient_cpf_fills_missing_patient_cns() -> None:
    text = "CNES;Competencia;Procedimento;CPF\n1234567;202309;0301010072;123.456.789-09"
    mapping = build_column_mapping({"cnes": 0, "competency": 1, "procedure": 2, "patient_cpf": 3})

    record = map_rows(text, mapping, mode="BPA-I").records[0]
    assert record.patient_cns == "12345678909"


def test_overflowing_cells_do_not_stop_the_run() -> None:
    text = "\n".join(
        [
            "CNES;Competencia;Procedimento;Nascimento;Quantidade",
            "1234567;202309;0401010058;10/05/1980;1e999",
            "1234567;202309;0401010058;01/01/99999999999999999999;1",
        ]
    )
    mapping = build_column_mapping(
        {"cnes": 0, "competency": 1, "procedure": 2, "birth_date": 3, "quantity": 4}
    )

    result = map_rows(text, mapping, mode="BPA-I", today=TODAY)

    assert result.total_rows == 2
    assert result.dropped == {DROP_INVALID_QUANTITY: 1}
    assert result.records[0].birth_date == "20230901"


def test_facility_id_keeps_digits_only() -> None:
    result = map_rows(
        _consolidated_text(
            "N/A;202309;515105;0401010058;30;1",
            "123.456-7;202309;515105;0401010058;30;1",
        ),
        build_column_mapping(CONSOLIDATED_INDICES),
    )

    assert [record.cnes for record in result.records] == ["1234567"]
    assert result.dropped == {DROP_MISSING_CNES: 1}


def test_map_rows_reads_comma_delimited_text_with_quoted_cells() -> None:
    text = "\n".join(
        [
            "CNES,Competencia,CBO,Procedimento,Idade,Quantidade",
            '1234567,09/2023,515105,"SUTURA",45,"2,0"',
        ]
    )

    record = map_rows(text, build_column_mapping(CONSOLIDATED_INDICES)).records[0]

    assert record.procedure == "0401010058"
    assert record.age == "45"
    assert record.quantity == 2


def test_oversized_cell_keeps_the_row() -> None:
    text = "\n".join(
        [
            "CNES,Competencia,CBO,Procedimento,Idade,Quantidade",
            '1234567,202309,515105,0401010058,"' + "A" * 200_000 + '",1',
        ]
    )

    result = map_rows(text, build_column_mapping(CONSOLIDATED_INDICES))

    assert len(result.records) == 1
    assert result.records[0].age == ""

from __future__ import annotations

from pathlib import Path

import pytest

from bpa_export.cli import main as cli_main
from bpa_export.profile import load_profile_document


def _write_production(path: Path) -> None:
    rows = ["CNES;Competencia;CBO;Procedimento;Idade;Quantidade"]
    rows.extend(f"1234567;09/2023;515105;0401010058;{index};1" for index in range(30))
    rows.append("1234567;10/2023;515105;0401010058;30;1")
    path.write_text("\n".join(rows) + "\n", encoding="utf-8")


def test_cli_suggest_mapping_then_generate_then_validate(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    production_path = tmp_path / "producao.csv"
    profile_path = tmp_path / "profile.yaml"
    bpa_path = tmp_path / "BPA.txt"
    _write_production(production_path)

    suggest_exit_code = cli_main(
        [
            "suggest-mapping",
            str(production_path),
            "--profile-name",
            "upa_v1",
            "--output-yaml",
            str(profile_path),
        ]
    )
    assert suggest_exit_code == 0

    profile = load_profile_document(profile_path)["profiles"]["upa_v1"]
    assert profile["column_map"]["CNES"] == "cnes"
    assert profile["column_map"]["Quantidade"] == "quantity"
    assert profile["column_map"]["Idade"] == "age"
    assert profile["procedure_header"] == "Procedimento"

    generate_exit_code = cli_main(
        [
            "generate",
            str(production_path),
            "--profile-yaml",
            str(profile_path),
            "--competency",
            "202309",
            "--output",
            str(bpa_path),
        ]
    )
    assert generate_exit_code == 0
    output = capsys.readouterr().out
    assert "Rows read: 31" in output
    assert "Rows dropped (competency_mismatch): 1" in output
    assert "Detail lines: 30" in output
    assert "Sheets: 2" in output

    content = bpa_path.read_bytes()
    assert content.endswith(b"\r\n")
    assert content.count(b"\r\n") == 31

    validate_exit_code = cli_main(["validate-file", str(bpa_path)])
    assert validate_exit_code == 0
    assert "BPA file valid" in capsys.readouterr().out


def test_cli_generate_without_profile_uses_default_name(tmp_path: Path) -> None:
    production_path = tmp_path / "producao.csv"
    _write_production(production_path)

    exit_code = cli_main(["generate", str(production_path), "--competency", "09/2023"])

    assert exit_code == 0
    assert (tmp_path / "BPA_202309_SMS.txt").exists()


def test_cli_generate_reports_invalid_header(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    production_path = tmp_path / "producao.csv"
    _write_production(production_path)

    exit_code = cli_main(["generate", str(production_path), "--competency", "2023"])

    assert exit_code == 1
    assert "Invalid export settings" in capsys.readouterr().out


def test_cli_validate_file_reports_errors(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    bpa_path = tmp_path / "BPA.txt"
    bpa_path.write_bytes(b"01#BPA#202309\n")

    exit_code = cli_main(["validate-file", str(bpa_path)])

    assert exit_code == 1
    output = capsys.readouterr().out
    assert "BPA file INVALID" in output
    assert "ERROR: document must end with CRLF" in output


def test_cli_generate_reports_column_missing_from_table(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    production_path = tmp_path / "producao.csv"
    profile_path = tmp_path / "profile.yaml"
    _write_production(production_path)
    profile_path.write_text(
        "column_map:\n  Estabelecimento: cnes\n  Procedimento: procedure\n", encoding="utf-8"
    )

    exit_code = cli_main(
        [
            "generate",
            str(production_path),
            "--profile-yaml",
            str(profile_path),
            "--competency",
            "202309",
        ]
    )

    assert exit_code == 1
    output = capsys.readouterr().out
    assert "Invalid export settings" in output
    assert "Estabelecimento" in output
    assert not (tmp_path / "BPA_202309_SMS.txt").exists()

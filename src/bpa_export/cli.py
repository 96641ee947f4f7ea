from __future__ import annotations

import argparse
import logging
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

import yaml

from .layout import validate_document
from .lookups import build_patient_address_lookup, build_professional_lookup
from .mapping import build_profile_template
from .models import SUPPORTED_MODES
from .pipeline import run_export
from .profile import ExportProfile, load_export_profile
from .sources import read_table_text
from .tabular import detect_headers

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bpa-export",
        description="Build BPA-C / BPA-I magnetic files from procedure spreadsheets.",
    )
    parser.add_argument("--log-level", choices=LOG_LEVELS, default="WARNING")
    subparsers = parser.add_subparsers(dest="command", required=True)

    suggest = subparsers.add_parser(
        "suggest-mapping",
        help="Write an export profile template with columns guessed from the table headers.",
    )
    suggest.add_argument("input_path", help="Delimited text file or .xlsx workbook.")
    suggest.add_argument("--sheet", help="Worksheet name for .xlsx input.")
    suggest.add_argument("--profile-name", default="default")
    suggest.add_argument("--mode", choices=SUPPORTED_MODES, default="BPA-C")
    suggest.add_argument(
        "--output-yaml",
        help="Path for the profile template. Default: <input_stem>_profile.yaml",
    )

    generate = subparsers.add_parser(
        "generate",
        help="Generate the BPA file for one competency.",
    )
    generate.add_argument("input_path", help="Delimited text file or .xlsx workbook.")
    generate.add_argument("--sheet", help="Worksheet name for .xlsx input.")
    generate.add_argument("--profile-yaml", help="Export profile (YAML or JSON).")
    generate.add_argument("--profile-name", default=None)
    generate.add_argument("--mode", choices=SUPPORTED_MODES, default=None)
    generate.add_argument("--competency", help="Competency AAAAMM; overrides the profile header.")
    generate.add_argument(
        "--consolidate",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Merge duplicate consolidated records. Default: profile setting.",
    )
    generate.add_argument("--professionals", help="Table of professional names and CNS.")
    generate.add_argument("--professionals-sheet", default=None)
    generate.add_argument("--patients", help="Table of patient names and addresses.")
    generate.add_argument("--patients-sheet", default=None)
    generate.add_argument(
        "--output",
        help="Path for the BPA file. Default: BPA_<competency>_<acronym>.txt next to the input",
    )

    validate = subparsers.add_parser(
        "validate-file",
        help="Check widths, counts and checksum of an existing BPA file.",
    )
    validate.add_argument("bpa_path", help="Path to BPA text file.")

    return parser


def _handle_suggest_mapping(args: argparse.Namespace) -> int:
    input_path = Path(args.input_path)
    text = read_table_text(input_path, args.sheet)
    headers = detect_headers(text)
    if not headers:
        print(f"No header row found: {input_path}")
        return 1

    template = build_profile_template(args.profile_name, headers, mode=args.mode)
    output_yaml = Path(args.output_yaml) if args.output_yaml else input_path.with_name(
        f"{input_path.stem}_profile.yaml"
    )
    output_yaml.write_text(
        yaml.safe_dump(template, allow_unicode=True, sort_keys=False),
        encoding="utf-8",
    )

    column_map = template["profiles"][args.profile_name]["column_map"]
    print(f"Profile template: {output_yaml}")
    print(f"Mapped columns: {len(column_map)} of {len(headers)}")
    for header, field_name in column_map.items():
        print(f"  {header} -> {field_name}")
    return 0


def _load_profile(args: argparse.Namespace) -> ExportProfile:
    if args.profile_yaml:
        profile = load_export_profile(Path(args.profile_yaml), args.profile_name)
    else:
        profile = ExportProfile()
    overrides: dict[str, object] = {}
    if args.mode is not None:
        overrides["mode"] = args.mode
        if args.consolidate is None and not args.profile_yaml:
            overrides["consolidate"] = args.mode == "BPA-C"
    if args.consolidate is not None:
        overrides["consolidate"] = args.consolidate
    return replace(profile, **overrides) if overrides else profile


def _load_lookup(
    path: str | None,
    sheet: str | None,
    builder: Callable[[str], dict[str, str]],
) -> dict[str, str]:
    if not path:
        return {}
    lookup = builder(read_table_text(Path(path), sheet))
    if not lookup:
        logger.warning("no lookup entries read from %s", path)
    return lookup


def _handle_generate(args: argparse.Namespace) -> int:
    input_path = Path(args.input_path)
    text = read_table_text(input_path, args.sheet)

    professional_lookup = _load_lookup(
        args.professionals, args.professionals_sheet, build_professional_lookup
    )
    patient_lookup = _load_lookup(args.patients, args.patients_sheet, build_patient_address_lookup)

    try:
        profile = _load_profile(args)
        header = profile.build_header(competency=args.competency)
        run = run_export(
            text,
            profile,
            header,
            professional_lookup=professional_lookup,
            patient_lookup=patient_lookup,
        )
    except ValueError as error:
        print(f"Invalid export settings: {error}")
        return 1

    document = run.document
    output_path = Path(args.output) if args.output else input_path.with_name(document.filename)
    output_path.write_text(document.content, encoding="ascii", newline="")

    print(f"BPA file generated: {output_path}")
    print(f"Mode: {document.mode}")
    print(f"Competency: {document.competency}")
    print(f"Rows read: {run.mapping_result.total_rows}")
    for reason, count in sorted(run.mapping_result.dropped.items()):
        print(f"Rows dropped ({reason}): {count}")
    if profile.consolidate:
        print(f"Records after consolidation: {run.consolidated_count}")
    print(f"Detail lines: {document.record_count}")
    print(f"Sheets: {document.sheet_count}")
    print(f"Checksum: {document.checksum}")
    return 0


def _handle_validate_file(args: argparse.Namespace) -> int:
    bpa_path = Path(args.bpa_path)
    if not bpa_path.exists():
        raise FileNotFoundError(bpa_path)

    content = bpa_path.read_bytes().decode("latin-1")
    report = validate_document(content)

    if not report.valid:
        print(f"BPA file INVALID: {bpa_path}")
        for error in report.errors:
            print(f"ERROR: {error}")
        for warning in report.warnings:
            print(f"WARNING: {warning}")
        return 1

    print(f"BPA file valid: {bpa_path}")
    print(f"Record type: {report.detail_tag or '-'}")
    print(f"Detail lines: {report.detail_count}")
    print(f"Sheets: {report.sheet_count}")
    print(f"Checksum: {report.checksum or '-'}")
    for warning in report.warnings:
        print(f"WARNING: {warning}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "suggest-mapping":
        return _handle_suggest_mapping(args)
    if args.command == "generate":
        return _handle_generate(args)
    if args.command == "validate-file":
        return _handle_validate_file(args)

    parser.error(f"unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from blocking_chart import __version__ as TOOL_VERSION
from blocking_chart.contracts import SCHEMA_VERSION, build_contract, build_run_summary
from blocking_chart.loader import EXCEL_FORMATS, ODS_FORMATS, choose_best_sheet, list_sheets, read_text
from blocking_chart.parse_modules.export import write_csv, write_xlsx
from blocking_chart.parse_modules.rows import NOISE_REASONS
from blocking_chart.parse_modules.shared import (
    DEFAULT_SETTINGS,
    SOURCE_FILE,
    SOURCE_PASTE,
    NormalizedRow,
    ParserSettings,
    category_label,
)
from blocking_chart.parse_modules.tokenizer import split_pasted_text
from blocking_chart.parser import convert_rows_to_shells, parse_batch, parse_file, summarize_rows

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_NO_ROWS = 3

STDIN_MARKER = "-"
EXPORT_FORMATS = ("csv", "xlsx")
DEFAULT_CONFIG_PATH = "blocking-chart.json"


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class BlockingChartArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def write_text(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (ImportError, UnicodeDecodeError, ValueError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def load_settings(config_path: str | None) -> ParserSettings:
    """Environment overrides first, then the JSON config file on top."""
    try:
        values = ParserSettings.from_env().to_dict()
    except ValueError as exc:
        raise CliError(f"Invalid environment setting: {exc}", EXIT_COMMAND_ERROR) from exc
    if not config_path:
        return ParserSettings.from_mapping(values)

    path = Path(config_path)
    if not path.exists():
        raise CliError(f"Config not found: {path}", EXIT_COMMAND_ERROR)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:
        raise CliError(f"Could not read config: {exc}", EXIT_COMMAND_ERROR) from exc
    if not isinstance(payload, dict):
        raise CliError("Config root must be a JSON object.", EXIT_COMMAND_ERROR)
    values.update(payload)
    try:
        return ParserSettings.from_mapping(values)
    except ValueError as exc:
        raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc


def parse_input(args: argparse.Namespace, settings: ParserSettings) -> dict[str, Any]:
    """
    Resolve INPUT into parsed rows plus whatever metadata the source offers.

    ``-`` reads pasted text from stdin; ``--paste`` treats a file's text the
    same way; anything else goes through the file loader.
    """
    if args.input == STDIN_MARKER or args.paste:
        if args.input == STDIN_MARKER:
            text = sys.stdin.read()
        else:
            input_path = Path(args.input)
            if not input_path.exists():
                raise CliError(f"File not found: {input_path}", EXIT_COMMAND_ERROR)
            text = read_text(input_path)
        outcome = parse_batch(split_pasted_text(text), SOURCE_PASTE, settings)
        return {
            "source": SOURCE_PASTE,
            "rows": outcome.rows,
            "header_index": outcome.header_index,
            "column_map": outcome.column_map,
            "skipped": outcome.skipped,
            "sheet_name": None,
            "warnings": [],
        }

    input_path = Path(args.input)
    if not input_path.exists():
        raise CliError(f"File not found: {input_path}", EXIT_COMMAND_ERROR)
    result = parse_file(input_path, sheet_name=args.sheet_name, settings=settings)
    result["source"] = SOURCE_FILE
    return result


def row_metrics(parsed: dict[str, Any]) -> dict[str, Any]:
    summary = summarize_rows(parsed["rows"])
    return {
        "rows_accepted": summary["total_rows"],
        "rows_skipped": len(parsed["skipped"]),
        "selected_budget": summary["selected_budget"],
    }


def base_payload(contract: str, script: str, args: argparse.Namespace, parsed: dict[str, Any], **extra: Any) -> dict[str, Any]:
    status = "ok" if parsed["rows"] else "no_rows"
    return {
        "contract": build_contract(contract),
        "schema_version": SCHEMA_VERSION,
        "tool_version": TOOL_VERSION,
        "run_summary": build_run_summary(
            tool="blocking-chart",
            script=script,
            input_path="<stdin>" if args.input == STDIN_MARKER else args.input,
            source=parsed["source"],
            sheet_name=parsed.get("sheet_name"),
            status=status,
            output_path=extra.pop("output_path", None),
            metrics=row_metrics(parsed),
            warnings=parsed.get("warnings"),
        ),
        "source": parsed["source"],
        "sheet_name": parsed.get("sheet_name"),
        "header_index": parsed["header_index"],
        "column_map": parsed["column_map"].to_dict() if parsed["column_map"] else None,
        **extra,
    }


def render_row_line(row: NormalizedRow) -> str:
    name = " / ".join(part for part in (row.channel, row.tactic, row.platform) if part)
    return f"  [{category_label(row.category)}] {name} | {row.objective} | {row.placements} | ${row.total_working_media_budget}"


def render_rows_text(parsed: dict[str, Any], include_skipped: bool) -> str:
    summary = summarize_rows(parsed["rows"])
    lines = ["blocking-chart rows"]
    if parsed.get("sheet_name"):
        lines.append(f"Sheet: {parsed['sheet_name']}")
    if parsed["header_index"] is not None:
        lines.append(f"Header row: {parsed['header_index']}")
    lines.append(f"Rows accepted: {summary['total_rows']}")
    lines.append(f"Rows skipped: {len(parsed['skipped'])}")
    for category, count in summary["by_category"].items():
        lines.append(f"  {category_label(category)}: {count}")
    lines.append(f"Selected working media budget: {summary['selected_budget']:,.2f}")
    lines.extend(render_row_line(row) for row in parsed["rows"])
    if include_skipped and parsed["skipped"]:
        lines.append("Skipped:")
        lines.extend(f"  row {item.source_row}: {item.reason}" for item in parsed["skipped"])
    for warning in parsed.get("warnings") or []:
        lines.append(f"Warning: {warning}")
    return "\n".join(lines) + "\n"


def run_rows(args: argparse.Namespace) -> int:
    try:
        settings = load_settings(args.config)
        parsed = parse_input(args, settings)
        if args.json:
            extra: dict[str, Any] = {"rows": [row.to_dict() for row in parsed["rows"]]}
            extra["summary"] = summarize_rows(parsed["rows"])
            if args.include_skipped:
                extra["skipped"] = [{"source_row": s.source_row, "reason": s.reason} for s in parsed["skipped"]]
            maybe_emit_json_stdout(base_payload("blocking_chart.rows", "rows", args, parsed, **extra), True)
        else:
            emit_human(render_rows_text(parsed, args.include_skipped).rstrip(), quiet=args.quiet)
        if not parsed["rows"]:
            emit_human("No valid campaign rows found.", quiet=args.quiet)
            return EXIT_NO_ROWS
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def resolve_export(args: argparse.Namespace) -> tuple[Path | None, str]:
    if not args.export:
        return None, args.format or "csv"
    export_path = Path(args.export)
    export_format = args.format or export_path.suffix.lower().lstrip(".")
    if export_format not in EXPORT_FORMATS:
        raise CliError(
            f"Cannot infer export format from '{export_path.name}'; pass --format csv or --format xlsx.",
            EXIT_COMMAND_ERROR,
        )
    if export_path.exists() and not args.force:
        raise CliError(f"Refusing to overwrite existing output: {export_path}", EXIT_COMMAND_ERROR)
    return export_path, export_format


def run_shells(args: argparse.Namespace) -> int:
    try:
        settings = load_settings(args.config)
        export_path, export_format = resolve_export(args)
        parsed = parse_input(args, settings)
        shells = convert_rows_to_shells(parsed["rows"])
        if export_path is not None:
            writer = write_xlsx if export_format == "xlsx" else write_csv
            writer(shells, export_path)
        if args.json:
            payload = base_payload(
                "blocking_chart.shells",
                "shells",
                args,
                parsed,
                output_path=export_path,
                shells=[shell.to_dict() for shell in shells],
            )
            maybe_emit_json_stdout(payload, True)
        else:
            emit_human(f"Campaign shells: {len(shells)}", quiet=args.quiet)
            for shell in shells:
                audience = shell.targeting_layers[0].audience_name if shell.targeting_layers else ""
                suffix = f" (audience: {audience})" if audience else ""
                emit_human(f"  [{category_label(shell.category)}] {shell.name}{suffix}", quiet=args.quiet)
            if export_path is not None:
                emit_human(f"Export written: {export_path}", quiet=args.quiet)
        if not shells:
            emit_human("No valid campaign rows found.", quiet=args.quiet)
            return EXIT_NO_ROWS
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_sheets(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        eprint(f"File not found: {input_path}")
        return EXIT_COMMAND_ERROR
    if input_path.suffix.lower() not in EXCEL_FORMATS | ODS_FORMATS:
        eprint(f"Not a workbook: {input_path}")
        return EXIT_COMMAND_ERROR
    try:
        names = list_sheets(input_path)
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)
    default = choose_best_sheet(names)
    if args.json:
        maybe_emit_json_stdout({"sheet_names": names, "default_sheet": default}, True)
    else:
        for name in names:
            marker = "*" if name == default else " "
            print(f"{marker} {name}")
    return EXIT_SUCCESS


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_text(config_path, json_dumps(DEFAULT_SETTINGS.to_dict()) + "\n")
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_explain(args: argparse.Namespace) -> int:
    code = args.code.upper()
    description = NOISE_REASONS.get(code)
    if description is None:
        eprint(f"Unknown skip reason: {args.code}. Known: {', '.join(NOISE_REASONS)}")
        return EXIT_COMMAND_ERROR
    if args.json:
        maybe_emit_json_stdout({"code": code, "description": description}, True)
    else:
        print(f"{code}: {description}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def add_input_arguments(command: argparse.ArgumentParser) -> None:
    command.add_argument("input", help="Input file path, or - to read pasted text from stdin")
    command.add_argument("--paste", action="store_true", help="Treat the input file as pasted text")
    command.add_argument("--sheet", dest="sheet_name", help="Workbook sheet name (default: best match)")
    command.add_argument("--config", help="JSON parser settings file")
    command.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    command.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    command.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")


def build_parser() -> argparse.ArgumentParser:
    parser = BlockingChartArgumentParser(
        prog="blocking-chart",
        description="Turn pasted or uploaded blocking charts into campaign shells.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    rows = subparsers.add_parser("rows", help="Parse a blocking chart and preview the accepted rows.")
    add_input_arguments(rows)
    rows.add_argument("--include-skipped", action="store_true", help="List skipped rows with their reason codes")

    shells = subparsers.add_parser("shells", help="Build campaign shells and optionally export them.")
    add_input_arguments(shells)
    shells.add_argument("--export", help="Write the flattened shells to this path")
    shells.add_argument("--format", choices=EXPORT_FORMATS, help="Export format (default: from the export suffix)")
    shells.add_argument("--force", action="store_true", help="Overwrite an existing export file")

    sheets = subparsers.add_parser("sheets", help="List workbook sheets and the one picked by default.")
    sheets.add_argument("input", help="Workbook path")
    sheets.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    explain = subparsers.add_parser("explain", help="Explain a skipped-row reason code.")
    explain.add_argument("code", help="Reason code, e.g. CALENDAR_GRID")
    explain.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter settings file.")
    config_init.add_argument("--path", default=DEFAULT_CONFIG_PATH, help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        configure_logging(getattr(args, "verbose", False))
        if args.command == "rows":
            return run_rows(args)
        if args.command == "shells":
            return run_shells(args)
        if args.command == "sheets":
            return run_sheets(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "explain":
            return run_explain(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())

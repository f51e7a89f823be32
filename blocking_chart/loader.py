"""
loader.py: file reader for blocking-chart

Supports: .csv .tsv .txt .xlsx .xlsm .xls .ods

Public API:
    result = load_grid("path/to/chart.xlsx")
    cells  = result["cells"]

Result dict keys:
    cells             : list of rows, each a list of trimmed strings (no header split)
    detected_format   : "csv", "xlsx", "ods", etc.
    detected_encoding : encoding name for text files; None for workbooks
    delimiter         : delimiter char for text files; None otherwise
    sheet_name        : sheet that was read for workbooks; None otherwise
    sheet_names       : all sheet names for workbooks; None otherwise
    original_rows     : row count of the grid
    original_columns  : widest row in the grid
    warnings          : list of warning strings
"""

from __future__ import annotations

import csv
import io
import logging
from collections import Counter
from pathlib import Path
from typing import Optional

import chardet
import pandas as pd

from blocking_chart.parse_modules.shared import stringify_cell

logger = logging.getLogger(__name__)

TEXT_FORMATS = {".csv", ".tsv", ".txt"}
EXCEL_FORMATS = {".xlsx", ".xls", ".xlsm"}
ODS_FORMATS = {".ods"}
ALL_FORMATS = TEXT_FORMATS | EXCEL_FORMATS | ODS_FORMATS

# Checked in order; the first keyword any sheet name contains wins.
SHEET_PREFERENCE = ("blocking", "chart", "data")


def _detect_encoding_info(raw: bytes) -> dict:
    result = chardet.detect(raw)
    detected = result.get("encoding") or "unknown"
    confidence = round(result.get("confidence") or 0.0, 2)
    return {
        "detected": detected,
        "confidence": confidence,
        "is_utf8": detected.upper().replace("-", "") in ("UTF8", "ASCII"),
    }


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line-by-line.

    Each line tries UTF-8, then the detected encoding, then latin-1, and
    finally CP1252 with replacement. Embedded null bytes are removed.
    """
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding, "latin-1"):
            if not enc or enc == "unknown":
                continue
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", "").rstrip("\r"))
    return "\n".join(decoded_lines)


def _detect_delimiter(text: str) -> str:
    """
    Infer the delimiter from sample lines.

    csv.Sniffer gets the first try; otherwise each candidate is scored by how
    consistent and how wide the resulting rows are.
    """
    sample_lines = [line for line in text.splitlines() if line.strip()][:50]
    sample = "\n".join(sample_lines[:25])

    if sample:
        try:
            return csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
        except csv.Error:
            pass

    best_delim = ","
    best_score = float("-inf")
    sample_text = "\n".join(sample_lines)
    for delim in (",", ";", "\t", "|"):
        rows = [row for row in csv.reader(io.StringIO(sample_text), delimiter=delim) if any(c.strip() for c in row)]
        if len(rows) < 2:
            continue
        mode_width, mode_count = Counter(len(row) for row in rows).most_common(1)[0]
        score = mode_width * 2.0 + (mode_count / len(rows)) * mode_width
        if mode_width == 1:
            score -= 10.0
        if score > best_score:
            best_score = score
            best_delim = delim
    return best_delim


def _frame_to_cells(df: pd.DataFrame) -> list[list[str]]:
    return [[stringify_cell(value) for value in row] for row in df.fillna("").values.tolist()]


def _grid_shape(cells: list[list[str]]) -> tuple[int, int]:
    return len(cells), max((len(row) for row in cells), default=0)


def read_text(path: "str | Path") -> str:
    """Decode a text file the same way delimited inputs are decoded."""
    raw = Path(path).read_bytes()
    info = _detect_encoding_info(raw)
    enc = info["detected"] if info["detected"] != "unknown" else "utf-8"
    return _read_text_safely(raw, enc)


def choose_best_sheet(sheet_names: list[str]) -> Optional[str]:
    for keyword in SHEET_PREFERENCE:
        for name in sheet_names:
            if keyword in name.lower():
                return name
    return sheet_names[0] if sheet_names else None


def _load_text(path: Path, suffix: str) -> dict:
    raw = path.read_bytes()
    enc_info = _detect_encoding_info(raw)
    enc = enc_info["detected"] if enc_info["detected"] != "unknown" else "utf-8"
    text = _read_text_safely(raw, enc)

    delimiter = "\t" if suffix == ".tsv" else _detect_delimiter(text)

    # Title and calendar rows are narrower than the table, so size the frame to the widest row.
    # Blank lines stay in the grid so row indices match line numbers.
    width = max((len(row) for row in csv.reader(io.StringIO(text), delimiter=delimiter)), default=0)
    if width == 0:
        cells: list[list[str]] = []
    else:
        sep = r"\|" if delimiter == "|" else delimiter
        try:
            df = pd.read_csv(
                io.StringIO(text),
                header=None,
                names=list(range(width)),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
                sep=sep,
                engine="python",
            )
        except Exception as exc:
            raise ValueError(f"Could not parse {suffix} file: {exc}") from exc
        cells = _frame_to_cells(df)

    rows, columns = _grid_shape(cells)
    return {
        "cells": cells,
        "detected_format": suffix.lstrip("."),
        "detected_encoding": enc,
        "delimiter": delimiter,
        "sheet_name": None,
        "sheet_names": None,
        "original_rows": rows,
        "original_columns": columns,
        "warnings": [],
    }


def _require_engine(suffix: str) -> Optional[str]:
    if suffix == ".xls":
        try:
            import xlrd  # noqa: F401
        except ImportError:
            raise ImportError(".xls files require xlrd (run: pip install xlrd)")
        return None
    if suffix == ".ods":
        try:
            import odf  # noqa: F401
        except ImportError:
            raise ImportError(".ods files require odfpy (run: pip install odfpy)")
        return "odf"
    return None


def _load_workbook(path: Path, suffix: str, sheet_name: Optional[str] = None) -> dict:
    """
    Load one sheet of a workbook as a raw cell grid.

    Without an explicit ``sheet_name`` the sheet is picked by name preference
    (blocking, chart, data), falling back to the first sheet.
    """
    engine = _require_engine(suffix)
    warnings: list[str] = []

    try:
        with pd.ExcelFile(path, engine=engine) as xf:
            all_sheets = [str(name) for name in xf.sheet_names]
    except Exception as exc:
        raise ValueError(f"Could not open workbook: {exc}") from exc

    if not all_sheets:
        raise ValueError("Could not open workbook: no sheets found")

    if sheet_name is not None:
        if sheet_name not in all_sheets:
            raise ValueError(f"Sheet '{sheet_name}' not found. Available: {all_sheets}")
        chosen_name = sheet_name
    else:
        chosen_name = choose_best_sheet(all_sheets)

    try:
        df = pd.read_excel(path, sheet_name=chosen_name, header=None, dtype=str, engine=engine)
    except Exception as exc:
        raise ValueError(f"Could not load sheet '{chosen_name}': {exc}") from exc

    if len(all_sheets) > 1:
        others = [name for name in all_sheets if name != chosen_name]
        warnings.append(f"Multiple sheets found ({len(all_sheets)} total); used '{chosen_name}'. Ignored: {others}")

    cells = _frame_to_cells(df)
    rows, columns = _grid_shape(cells)
    return {
        "cells": cells,
        "detected_format": suffix.lstrip("."),
        "detected_encoding": None,
        "delimiter": None,
        "sheet_name": chosen_name,
        "sheet_names": all_sheets,
        "original_rows": rows,
        "original_columns": columns,
        "warnings": warnings,
    }


def list_sheets(path: "str | Path") -> list[str]:
    path = Path(path)
    suffix = path.suffix.lower()
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if suffix not in EXCEL_FORMATS | ODS_FORMATS:
        raise ValueError(f"'{suffix}' is not a workbook format")
    engine = _require_engine(suffix)
    try:
        with pd.ExcelFile(path, engine=engine) as xf:
            return [str(name) for name in xf.sheet_names]
    except Exception as exc:
        raise ValueError(f"Could not open workbook: {exc}") from exc


def load_grid(path: "str | Path", sheet_name: Optional[str] = None) -> dict:
    """
    Load any supported file into a raw cell grid.

    Raises:
        FileNotFoundError  if the file does not exist.
        ValueError         if the format is unsupported or unreadable.
        ImportError        if a required optional dependency is missing.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if suffix not in ALL_FORMATS:
        supported = ", ".join(sorted(ALL_FORMATS))
        raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")

    if suffix in TEXT_FORMATS:
        result = _load_text(path, suffix)
    else:
        result = _load_workbook(path, suffix, sheet_name)

    logger.info(
        "Loaded %s (%s): %d rows x %d columns",
        path.name,
        result["sheet_name"] or result["detected_format"],
        result["original_rows"],
        result["original_columns"],
    )
    return result

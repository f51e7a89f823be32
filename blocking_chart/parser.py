"""
parser.py: blocking chart ingestion engine

Turns one batch of raw rows (pasted lines or a sheet's cell grid) into
normalized campaign rows, then into campaign shells.

Public API:
    rows    = parse_pasted_text(text)
    rows    = parse_grid(cells)
    result  = parse_file("plan.xlsx")
    shells  = convert_rows_to_shells(rows)
    summary = summarize_rows(rows)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from blocking_chart.loader import load_grid
from blocking_chart.parse_modules.header import locate_header, map_columns
from blocking_chart.parse_modules.rows import classify_row
from blocking_chart.parse_modules.shared import (
    CATEGORIES,
    DEFAULT_SETTINGS,
    SOURCE_FILE,
    SOURCE_PASTE,
    UNCATEGORIZED,
    VALID_SOURCES,
    ColumnMap,
    NormalizedRow,
    ParserSettings,
    SkippedRow,
    parse_number,
    stringify_cell,
)
from blocking_chart.parse_modules.shells import CampaignShell, build_shell
from blocking_chart.parse_modules.tokenizer import split_pasted_text

logger = logging.getLogger(__name__)


@dataclass
class ParseOutcome:
    rows: list[NormalizedRow] = field(default_factory=list)
    header_index: Optional[int] = None
    column_map: Optional[ColumnMap] = None
    skipped: list[SkippedRow] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": [row.to_dict() for row in self.rows],
            "header_index": self.header_index,
            "column_map": self.column_map.to_dict() if self.column_map else None,
            "skipped": [{"source_row": item.source_row, "reason": item.reason} for item in self.skipped],
        }


def _is_blank(cells: list[str]) -> bool:
    return not any((cell or "").strip() for cell in cells)


def parse_batch(
    raw_rows: list[list[str]],
    source: str = SOURCE_PASTE,
    settings: Optional[ParserSettings] = None,
) -> ParseOutcome:
    """
    Run one batch through header location, column mapping and row classification.

    ``source_row`` on every emitted or skipped row is the index into ``raw_rows``.
    The channel of the previous row is carried forward for merged cells, and
    resets with every batch.
    """
    if source not in VALID_SOURCES:
        raise ValueError(f"Unknown source '{source}'. Expected one of {VALID_SOURCES}")
    settings = settings or DEFAULT_SETTINGS

    indexed = [(index, cells) for index, cells in enumerate(raw_rows) if not _is_blank(cells)]
    if not indexed:
        logger.info("Empty %s batch: nothing to parse", source)
        return ParseOutcome()

    units = [cells for _, cells in indexed]
    header_position = locate_header(units, settings=settings)
    header_index = indexed[header_position][0]
    column_map = map_columns(units[header_position], settings)
    logger.debug("Header located at row %d of %s batch", header_index, source)

    outcome = ParseOutcome(header_index=header_index, column_map=column_map)
    current_channel = ""
    for row_index, cells in indexed[header_position + 1 :]:
        decision = classify_row(cells, row_index, current_channel, column_map, source, settings)
        current_channel = decision.updated_channel
        if decision.accept and decision.row is not None:
            outcome.rows.append(decision.row)
        else:
            outcome.skipped.append(SkippedRow(row_index, decision.reason or "INCOMPLETE"))

    logger.info(
        "Parsed %s batch: %d rows accepted, %d skipped (header at row %d)",
        source,
        len(outcome.rows),
        len(outcome.skipped),
        header_index,
    )
    return outcome


def parse_pasted_text(text: str, settings: Optional[ParserSettings] = None) -> list[NormalizedRow]:
    return parse_batch(split_pasted_text(text or ""), SOURCE_PASTE, settings).rows


def grid_from_cells(cells: list[list[Any]]) -> list[list[str]]:
    return [[stringify_cell(value) for value in row] for row in cells or []]


def parse_grid(cells: list[list[Any]], settings: Optional[ParserSettings] = None) -> list[NormalizedRow]:
    return parse_batch(grid_from_cells(cells), SOURCE_FILE, settings).rows


def parse_file(
    path: "str | Path",
    sheet_name: Optional[str] = None,
    settings: Optional[ParserSettings] = None,
) -> dict[str, Any]:
    """
    Load a spreadsheet or delimited file and parse its chosen sheet.

    Loader errors (FileNotFoundError, ValueError, ImportError) propagate.
    """
    loaded = load_grid(path, sheet_name=sheet_name)
    outcome = parse_batch(loaded["cells"], SOURCE_FILE, settings)
    return {
        "rows": outcome.rows,
        "header_index": outcome.header_index,
        "column_map": outcome.column_map,
        "skipped": outcome.skipped,
        "detected_format": loaded["detected_format"],
        "detected_encoding": loaded["detected_encoding"],
        "delimiter": loaded["delimiter"],
        "sheet_name": loaded["sheet_name"],
        "sheet_names": loaded["sheet_names"],
        "original_rows": loaded["original_rows"],
        "original_columns": loaded["original_columns"],
        "warnings": loaded["warnings"],
    }


def convert_rows_to_shells(rows: list[NormalizedRow], only_selected: bool = True) -> list[CampaignShell]:
    return [build_shell(row) for row in rows if row.selected or not only_selected]


def summarize_rows(rows: list[NormalizedRow]) -> dict[str, Any]:
    by_category = {category: 0 for category in CATEGORIES}
    total_budget = 0.0
    selected = 0
    for row in rows:
        category = row.category if row.category in by_category else UNCATEGORIZED
        by_category[category] += 1
        if row.selected:
            selected += 1
            total_budget += parse_number(row.total_working_media_budget) or 0.0
    return {
        "total_rows": len(rows),
        "selected_rows": selected,
        "by_category": by_category,
        "selected_budget": round(total_budget, 2),
    }

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable

from blocking_chart.parse_modules.budget import resolve_budget
from blocking_chart.parse_modules.categories import categorize
from blocking_chart.parse_modules.shared import (
    DEFAULT_SETTINGS,
    ROW_FIELDS,
    SOURCE_FILE,
    SOURCE_PASTE,
    ColumnMap,
    NormalizedRow,
    ParserSettings,
    cell_at,
    clean_value,
    parse_number,
)

logger = logging.getLogger(__name__)

LAYOUT_NORMAL = "NORMAL"
LAYOUT_CHANNEL_MISSING = "CHANNEL_COLUMN_MISSING"

NOISE_REASONS = {
    "TOTAL_ROW": "Total, subtotal or grand total line",
    "NUMERIC_ONLY": "Row is a bare number",
    "CHANNEL_SEPARATOR": "Bare channel separator row (channel family without a platform)",
    "CHANNEL_WORD": "Row holds only generic channel words (digital/paid/social/video/display)",
    "CALENDAR_MONTH": "Flight calendar row naming a month",
    "CALENDAR_GRID": "Flight calendar grid of small day numbers",
    "FLIGHT_CALENDAR": "Fewer than 10 characters left once digits and whitespace are removed",
    "RATE_CARD": "Rate card, variance or ad-serving reference block (file uploads only)",
    "INCOMPLETE": "Missing channel/tactic/platform/objective/placements or a positive working media budget",
}

MONTH_NAMES = (
    "september", "october", "november", "december", "january", "february",
    "march", "april", "may", "june", "july", "august",
)
NUMERIC_ONLY_RE = re.compile(r"^\s*\d+\s*$")
CHANNEL_WORDS_RE = re.compile(r"^\s*(?:(?:digital|paid|social|video|display)\s*)+$")
CALENDAR_GRID_RE = re.compile(r"\b\d{1,2}\s+\d{1,2}\s+\d{1,2}")
DIGITS_AND_SPACE_RE = re.compile(r"[\d\s]")

# Channel family -> platform words that make it a real line item rather than a separator.
CHANNEL_FAMILIES = {
    "digital video": ("trade desk",),
    "digital display": ("trade desk",),
    "paid social": ("meta", "tiktok"),
}

RATE_CARD_WORDS = ("variance", "rates", "adserving", "pre-bid", "y/n")

TACTIC_FRAGMENTS = (
    "skippable",
    "display banners",
    "meta video",
    "meta traffic",
    "tiktok in-feed",
    "static pins",
    "standard video pins",
    "idea ads",
)
FILE_TACTIC_FRAGMENTS = TACTIC_FRAGMENTS + (
    "display banners fr",
    "meta video fr",
    "meta traffic fr",
    "static pins en",
    "static pins fr",
    "standard video pins fr",
    "idea ads fr",
)


@dataclass
class RowDecision:
    accept: bool
    updated_channel: str
    reason: str | None = None
    row: NormalizedRow | None = None


def row_text(cells: list[str]) -> str:
    return "\t".join(cell or "" for cell in cells)


def _non_empty_count(cells: list[str]) -> int:
    return sum(1 for cell in cells if (cell or "").strip())


def _is_channel_separator(text: str, cells: list[str], settings: ParserSettings) -> bool:
    if _non_empty_count(cells) > settings.separator_max_cells:
        return False
    for family, platforms in CHANNEL_FAMILIES.items():
        if family in text and not any(platform in text for platform in platforms):
            return True
    return False


def _is_rate_card(text: str) -> bool:
    if any(word in text for word in RATE_CARD_WORDS):
        return True
    if "channels" in text and "rates" in text:
        return True
    if "cpm" in text:
        if "youtube" in text or "ttd" in text or "amz" in text:
            return True
        if "meta" in text and "video" not in text and "traffic" not in text:
            return True
    return "tiktok" in text and "no associated" in text


NoisePredicate = Callable[[str, list[str], ParserSettings], bool]

# (code, predicate, sources), evaluated in order; first match wins.
NOISE_RULES: list[tuple[str, NoisePredicate, tuple[str, ...]]] = [
    ("TOTAL_ROW", lambda t, c, s: "total" in t, (SOURCE_PASTE, SOURCE_FILE)),
    ("NUMERIC_ONLY", lambda t, c, s: bool(NUMERIC_ONLY_RE.match(t)), (SOURCE_PASTE, SOURCE_FILE)),
    ("CHANNEL_SEPARATOR", _is_channel_separator, (SOURCE_PASTE, SOURCE_FILE)),
    ("CHANNEL_WORD", lambda t, c, s: bool(CHANNEL_WORDS_RE.match(t)), (SOURCE_PASTE, SOURCE_FILE)),
    ("CALENDAR_MONTH", lambda t, c, s: any(month in t for month in MONTH_NAMES), (SOURCE_PASTE, SOURCE_FILE)),
    ("CALENDAR_GRID", lambda t, c, s: bool(CALENDAR_GRID_RE.search(t)), (SOURCE_PASTE, SOURCE_FILE)),
    ("FLIGHT_CALENDAR", lambda t, c, s: len(DIGITS_AND_SPACE_RE.sub("", t)) < 10, (SOURCE_PASTE, SOURCE_FILE)),
    ("RATE_CARD", lambda t, c, s: _is_rate_card(t), (SOURCE_FILE,)),
]


def noise_reason(cells: list[str], source: str = SOURCE_PASTE, settings: ParserSettings = DEFAULT_SETTINGS) -> str | None:
    text = row_text(cells).lower()
    for code, predicate, sources in NOISE_RULES:
        if source in sources and predicate(text, cells, settings):
            return code
    return None


def detect_layout(cells: list[str], source: str = SOURCE_PASTE) -> str:
    first = (cells[0] if cells else "").lower()
    fragments = FILE_TACTIC_FRAGMENTS if source == SOURCE_FILE else TACTIC_FRAGMENTS
    if any(fragment in first for fragment in fragments):
        return LAYOUT_CHANNEL_MISSING
    return LAYOUT_NORMAL


def extract_fields(layout: str, cells: list[str], column_map: ColumnMap, current_channel: str) -> dict[str, str]:
    """Pull every mapped field out of ``cells`` for the given layout, cleaned."""
    fields = {
        name: clean_value(cell_at(cells, getattr(column_map, name)))
        for name in ROW_FIELDS
        if name != "total_working_media_budget"
    }
    if layout == LAYOUT_CHANNEL_MISSING:
        fields["channel"] = clean_value(current_channel)
        fields["tactic"] = clean_value(cell_at(cells, 0))
        fields["platform"] = clean_value(cell_at(cells, 1))
        fields["objective"] = clean_value(cell_at(cells, 2))
        fields["placements"] = clean_value(cell_at(cells, 3))
        impressions_index = column_map.impressions_grps - 1 if column_map.impressions_grps >= 0 else -1
        fields["impressions_grps"] = clean_value(cell_at(cells, impressions_index))
    elif not fields["channel"]:
        fields["channel"] = clean_value(current_channel)
    return fields


def missing_core_fields(fields: dict[str, str], budget: str) -> list[str]:
    missing = []
    for name, header_word in (("channel", "Channel"), ("tactic", "Tactic"), ("platform", "Platform")):
        if not fields[name] or fields[name] == header_word:
            missing.append(name)
    for name in ("objective", "placements"):
        if not fields[name]:
            missing.append(name)
    number = parse_number(budget)
    if number is None or number <= 0:
        missing.append("total_working_media_budget")
    return missing


def classify_row(
    cells: list[str],
    row_index: int,
    current_channel: str,
    column_map: ColumnMap,
    source: str = SOURCE_PASTE,
    settings: ParserSettings = DEFAULT_SETTINGS,
) -> RowDecision:
    """
    Decide whether one data row is noise, a merged-cell row, or a campaign row.

    ``current_channel`` is the last non-blank channel seen in this batch; the
    returned decision carries the value to thread into the next row.
    """
    reason = noise_reason(cells, source, settings)
    if reason is not None:
        logger.debug("Row %d skipped: %s", row_index, reason)
        return RowDecision(False, current_channel, reason)

    layout = detect_layout(cells, source)
    if layout == LAYOUT_CHANNEL_MISSING:
        logger.debug("Row %d: channel column missing, reusing %r", row_index, current_channel)
    fields = extract_fields(layout, cells, column_map, current_channel)

    updated_channel = current_channel
    if layout == LAYOUT_NORMAL and fields["channel"]:
        updated_channel = fields["channel"]

    budget = resolve_budget(cells, column_map, settings)
    missing = missing_core_fields(fields, budget)
    if missing:
        logger.debug("Row %d skipped: INCOMPLETE (%s)", row_index, ", ".join(missing))
        return RowDecision(False, updated_channel, "INCOMPLETE")

    row = NormalizedRow(
        **fields,
        total_working_media_budget=budget,
        category=categorize(fields["channel"], fields["platform"]),
        source_row=row_index,
    )
    return RowDecision(True, updated_channel, None, row)

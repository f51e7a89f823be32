from __future__ import annotations

import logging
from typing import Callable

from blocking_chart.parse_modules.shared import (
    DEFAULT_SETTINGS,
    POSITIONAL_DEFAULTS,
    ColumnMap,
    ParserSettings,
)

logger = logging.getLogger(__name__)

HEADER_KEYWORDS = (
    "channel",
    "platform",
    "tactic",
    "audience",
    "objective",
    "placement",
    "budget",
    "impression",
    "cpm",
    "cost",
    "kpi",
    "optimization",
)

AUDIENCE_HINTS = ("demo", "targeting", "segment", "persona", "demographic", "flavour", "seeker")
WORKING_BUDGET_LABELS = (
    "total working media budget",
    "working media budget",
    "total working budget",
    "working budget",
)

BUDGET_FIELD = "total_working_media_budget"
BACKSTOP = "backstop"


def _has(*needles: str) -> Callable[[str], bool]:
    return lambda header: any(needle in header for needle in needles)


def _is_working_budget(header: str) -> bool:
    if any(label in header for label in WORKING_BUDGET_LABELS):
        return True
    if "working" in header and "budget" in header:
        return True
    return "total" in header and "working" in header and "media" in header


def _is_backstop_budget(header: str) -> bool:
    return header.endswith("budget") and "impression" not in header and "grp" not in header


# Evaluated top to bottom per header cell; the first matching rule claims the cell.
COLUMN_RULES: list[tuple[str, Callable[[str], bool]]] = [
    ("channel", _has("channel")),
    ("tactic", _has("tactic")),
    ("platform", _has("platform")),
    ("objective", _has("objective")),
    ("placements", _has("placement")),
    ("optimization", _has("optimization")),
    ("kpi", _has("kpi")),
    ("demo_targeting", lambda h: h in {"audience", "audiences"}),
    ("demo_targeting", lambda h: "audience" in h and "cpm" not in h and "cpp" not in h),
    ("demo_targeting", _has(*AUDIENCE_HINTS)),
    ("cpm_cpp", _has("cpm", "cpp", "cost per")),
    ("impressions_grps", _has("impression", "grp")),
    ("media_cost", lambda h: "media cost" in h and "working" not in h),
    ("ad_serving", _has("ad serving")),
    ("dv_cost", _has("dv cost")),
    ("media_fee", _has("media fee")),
    (BUDGET_FIELD, _is_working_budget),
    (BACKSTOP, _is_backstop_budget),
]


def header_score(row: list[str]) -> int:
    score = 0
    for cell in row:
        lowered = (cell or "").strip().lower()
        if lowered and any(keyword in lowered for keyword in HEADER_KEYWORDS):
            score += 1
    return score


def locate_header(rows: list[list[str]], max_scan: int | None = None, settings: ParserSettings = DEFAULT_SETTINGS) -> int:
    """
    Return the index of the row most likely to be the column header.

    A row with at least ``header_min_matches`` keyword cells wins immediately;
    otherwise the best-scoring row is used, and index 0 when nothing scores.
    """
    limit = settings.header_scan_rows if max_scan is None else max_scan
    best_index = 0
    best_score = 0
    for index, row in enumerate(rows[:limit]):
        score = header_score(row)
        if score > best_score:
            best_score = score
            best_index = index
        if score >= settings.header_min_matches:
            return index
    return best_index


def match_header(header: str) -> str | None:
    lowered = (header or "").strip().lower()
    if not lowered:
        return None
    for target, predicate in COLUMN_RULES:
        if predicate(lowered):
            return target
    return None


def map_columns(header_cells: list[str], settings: ParserSettings = DEFAULT_SETTINGS) -> ColumnMap:
    found: dict[str, int] = {}
    for index, header in enumerate(header_cells):
        target = match_header(header)
        if target is None:
            continue
        if target == BACKSTOP:
            found.setdefault(BUDGET_FIELD, index)
            continue
        found[target] = index

    column_map = ColumnMap(**found)
    for name, default in POSITIONAL_DEFAULTS.items():
        if name in found:
            continue
        if name == "demo_targeting":
            default = settings.demo_targeting_default
        setattr(column_map, name, default)

    logger.debug("Column mapping from %d header cells: %s", len(header_cells), column_map.to_dict())
    return column_map

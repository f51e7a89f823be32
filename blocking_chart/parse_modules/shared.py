from __future__ import annotations

import os
import re
import uuid
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Mapping

UNMAPPED = -1

SOURCE_PASTE = "paste"
SOURCE_FILE = "file"
VALID_SOURCES = (SOURCE_PASTE, SOURCE_FILE)

CORE_FIELDS = (
    "channel",
    "tactic",
    "platform",
    "objective",
    "placements",
    "optimization",
    "kpi",
    "demo_targeting",
    "cpm_cpp",
    "impressions_grps",
)
FINANCIAL_FIELDS = (
    "media_cost",
    "ad_serving",
    "dv_cost",
    "media_fee",
    "total_working_media_budget",
)
ROW_FIELDS = CORE_FIELDS + FINANCIAL_FIELDS

POSITIONAL_DEFAULTS = {
    "channel": 0,
    "tactic": 1,
    "platform": 2,
    "objective": 3,
    "placements": 4,
    "optimization": 5,
    "kpi": 6,
    "demo_targeting": 7,
    "cpm_cpp": 8,
    "impressions_grps": 9,
}

BRAND_SAY_DIGITAL = "brand_say_digital"
BRAND_SAY_SOCIAL = "brand_say_social"
OTHER_SAY_SOCIAL = "other_say_social"
UNCATEGORIZED = "uncategorized"
CATEGORIES = (BRAND_SAY_DIGITAL, BRAND_SAY_SOCIAL, OTHER_SAY_SOCIAL, UNCATEGORIZED)
CATEGORY_LABELS = {
    BRAND_SAY_DIGITAL: "Brand Say Digital",
    BRAND_SAY_SOCIAL: "Brand Say Social",
    OTHER_SAY_SOCIAL: "Other Say Social",
    UNCATEGORIZED: "Uncategorized",
}

NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")

ENV_PREFIX = "BLOCKING_CHART_"


def new_id() -> str:
    return str(uuid.uuid4())


def category_label(category: str | None) -> str:
    return CATEGORY_LABELS.get(category or UNCATEGORIZED, CATEGORY_LABELS[UNCATEGORIZED])


def stringify_cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:
        return ""
    return str(value).replace("\x00", "").strip()


def clean_value(value: str | None) -> str:
    """Strip one leading ``$`` and every comma, then trim."""
    text = (value or "").strip()
    if text.startswith("$"):
        text = text[1:]
    return text.replace(",", "").strip()


def parse_number(value: str | None) -> float | None:
    text = clean_value(value)
    if not NUMBER_RE.fullmatch(text):
        return None
    return float(text)


def cell_at(row: list[str], index: int) -> str:
    if index < 0 or index >= len(row):
        return ""
    return row[index] or ""


@dataclass(frozen=True)
class ParserSettings:
    header_scan_rows: int = 10
    header_min_matches: int = 3
    budget_ceiling: float = 500_000
    decimal_preference_threshold: float = 100_000
    separator_max_cells: int = 2
    demo_targeting_default: int = UNMAPPED

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ParserSettings":
        known = {item.name: item for item in fields(cls)}
        unknown = sorted(set(values) - set(known))
        if unknown:
            raise ValueError(f"Unknown parser setting(s): {unknown}. Known: {sorted(known)}")
        parsed: dict[str, Any] = {}
        for name, raw in values.items():
            expected = int if known[name].type in {"int", int} else float
            if isinstance(raw, bool):
                raise ValueError(f"Setting '{name}' must be numeric, got {raw!r}")
            try:
                parsed[name] = expected(raw)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Setting '{name}' must be numeric, got {raw!r}") from exc
        return cls(**parsed)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ParserSettings":
        environ = os.environ if environ is None else environ
        overrides = {
            item.name: environ[ENV_PREFIX + item.name.upper()]
            for item in fields(cls)
            if ENV_PREFIX + item.name.upper() in environ
        }
        return cls.from_mapping(overrides)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_SETTINGS = ParserSettings()


@dataclass
class ColumnMap:
    channel: int = UNMAPPED
    tactic: int = UNMAPPED
    platform: int = UNMAPPED
    objective: int = UNMAPPED
    placements: int = UNMAPPED
    optimization: int = UNMAPPED
    kpi: int = UNMAPPED
    demo_targeting: int = UNMAPPED
    cpm_cpp: int = UNMAPPED
    impressions_grps: int = UNMAPPED
    media_cost: int = UNMAPPED
    ad_serving: int = UNMAPPED
    dv_cost: int = UNMAPPED
    media_fee: int = UNMAPPED
    total_working_media_budget: int = UNMAPPED

    def is_mapped(self, name: str) -> bool:
        return getattr(self, name) >= 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class NormalizedRow:
    channel: str
    tactic: str
    platform: str
    objective: str
    placements: str
    optimization: str = ""
    kpi: str = ""
    demo_targeting: str = ""
    cpm_cpp: str = ""
    impressions_grps: str = ""
    media_cost: str = ""
    ad_serving: str = ""
    dv_cost: str = ""
    media_fee: str = ""
    total_working_media_budget: str = ""
    category: str = UNCATEGORIZED
    selected: bool = True
    start_date: str = ""
    end_date: str = ""
    source_row: int | None = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SkippedRow:
    source_row: int
    reason: str

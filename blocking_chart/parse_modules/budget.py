from __future__ import annotations

from blocking_chart.parse_modules.shared import (
    DEFAULT_SETTINGS,
    ColumnMap,
    ParserSettings,
    cell_at,
    clean_value,
    parse_number,
)


def _mapped_budget(row: list[str], column_map: ColumnMap) -> str:
    if not column_map.is_mapped("total_working_media_budget"):
        return ""
    value = clean_value(cell_at(row, column_map.total_working_media_budget))
    number = parse_number(value)
    if number is not None and number > 0:
        return value
    return ""


def _rightmost_plausible_budget(row: list[str], settings: ParserSettings) -> str:
    # Impression counts usually sit above the ceiling, so they are passed over.
    for raw in reversed(row):
        value = clean_value(raw)
        number = parse_number(value)
        if number is None or number <= 0 or number > settings.budget_ceiling:
            continue
        if "." in value or number < settings.decimal_preference_threshold:
            return value
    return ""


def resolve_budget(row: list[str], column_map: ColumnMap, settings: ParserSettings = DEFAULT_SETTINGS) -> str:
    """Return the cleaned working media budget for ``row``, or ``""`` when none resolves."""
    return _mapped_budget(row, column_map) or _rightmost_plausible_budget(row, settings)

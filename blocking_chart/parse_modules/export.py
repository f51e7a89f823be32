from __future__ import annotations

from pathlib import Path

import openpyxl
import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from blocking_chart.parse_modules.shared import category_label
from blocking_chart.parse_modules.shells import CampaignShell, CreativeShell, TargetingLayer

EXPORT_COLUMNS = [
    "Campaign Name",
    "Accutics Campaign Name",
    "Channel",
    "Platform",
    "Objective",
    "Placements",
    "Category",
    "Impressions",
    "Working Media Budget",
    "Start Date",
    "End Date",
    "Audience",
    "Accutics Line Item",
    "Creative Name",
    "Accutics Creative Name",
    "Asset Link",
    "Video URL",
    "Landing Page",
    "Landing Page with UTM",
]

HEADER_COLOR = "1565C0"
EXPORT_SHEET_TITLE = "Campaign Shells"


def _shell_record(shell: CampaignShell) -> dict[str, str]:
    return {
        "Campaign Name": shell.name,
        "Accutics Campaign Name": shell.taxonomy_name,
        "Channel": shell.channel,
        "Platform": shell.platform,
        "Objective": shell.objective,
        "Placements": shell.placements,
        "Category": category_label(shell.category),
        "Impressions": shell.impressions,
        "Working Media Budget": shell.working_media_budget,
        "Start Date": shell.start_date,
        "End Date": shell.end_date,
    }


def _layer_record(layer: TargetingLayer) -> dict[str, str]:
    return {"Audience": layer.audience_name, "Accutics Line Item": layer.line_item_name}


def _creative_record(creative: CreativeShell) -> dict[str, str]:
    return {
        "Creative Name": creative.name,
        "Accutics Creative Name": creative.taxonomy_name,
        "Asset Link": creative.asset_link or "",
        "Video URL": creative.video_url or "",
        "Landing Page": creative.landing_page,
        "Landing Page with UTM": creative.landing_page_with_utm,
    }


def _padded(*parts: dict[str, str]) -> dict[str, str]:
    record = {column: "" for column in EXPORT_COLUMNS}
    for part in parts:
        record.update(part)
    return record


def flatten_shells(shells: list[CampaignShell]) -> list[dict[str, str]]:
    """One record per creative, per creative-less layer, or per layer-less shell."""
    records: list[dict[str, str]] = []
    for shell in shells:
        base = _shell_record(shell)
        if not shell.targeting_layers:
            records.append(_padded(base))
            continue
        for layer in shell.targeting_layers:
            layer_part = _layer_record(layer)
            if not layer.creatives:
                records.append(_padded(base, layer_part))
                continue
            for creative in layer.creatives:
                records.append(_padded(base, layer_part, _creative_record(creative)))
    return records


def export_frame(shells: list[CampaignShell]) -> pd.DataFrame:
    return pd.DataFrame(flatten_shells(shells), columns=EXPORT_COLUMNS)


def write_csv(shells: list[CampaignShell], output_path: Path) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    export_frame(shells).to_csv(output_path, index=False)
    return output_path


def _infer_col_widths(rows: list[list], min_width: int = 10, max_width: int = 60, sample: int = 300) -> list[int]:
    if not rows:
        return []
    widths = [max(min_width, min(max_width, len(str(v)) + 2)) for v in rows[0]]
    for row in rows[1 : sample + 1]:
        for i, val in enumerate(row):
            widths[i] = max(widths[i], min(max_width, len(str(val)) + 2))
    return widths


def _style_sheet(ws, col_widths: list[int], header_color: str) -> None:
    fill = PatternFill("solid", fgColor=header_color)
    font = Font(bold=True, color="FFFFFF")
    for cell in ws[1]:
        cell.font = font
        cell.fill = fill
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=False)
    ws.freeze_panes = "A2"
    for i, width in enumerate(col_widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width


def write_xlsx(shells: list[CampaignShell], output_path: Path) -> Path:
    output_path = Path(output_path)
    rows = [EXPORT_COLUMNS] + [[record[column] for column in EXPORT_COLUMNS] for record in flatten_shells(shells)]

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = EXPORT_SHEET_TITLE
    for row in rows:
        ws.append(row)
    _style_sheet(ws, _infer_col_widths(rows), HEADER_COLOR)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(output_path)
    return output_path

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from blocking_chart.parse_modules.shared import UNCATEGORIZED, NormalizedRow, new_id, parse_number

AUDIENCE_REJECT_MARKERS = ("$", "CPM", "CPP")


@dataclass
class UTMParameters:
    term: str | None = None


def generate_utm_url(base_url: str, params: UTMParameters) -> str:
    if not base_url or not base_url.strip():
        return ""
    parts = urlsplit(base_url.strip())
    if not parts.scheme or not parts.netloc:
        return base_url
    query = parse_qsl(parts.query, keep_blank_values=True)
    if params.term:
        query = [(key, value) for key, value in query if key != "utm_term"]
        query.append(("utm_term", params.term))
    return urlunsplit(parts._replace(query=urlencode(query)))


@dataclass
class CreativeShell:
    name: str
    landing_page: str = ""
    landing_page_with_utm: str = ""
    taxonomy_name: str = ""
    asset_link: str | None = None
    video_url: str | None = None
    utm_parameters: UTMParameters = field(default_factory=UTMParameters)
    id: str = field(default_factory=new_id)

    def update(self, **changes: Any) -> "CreativeShell":
        """
        Apply edits in place.

        A new landing page re-derives the tracked URL, unless the same edit
        also sets ``landing_page_with_utm`` explicitly.
        """
        unknown = sorted(set(changes) - EDITABLE_CREATIVE_FIELDS)
        if unknown:
            raise AttributeError(f"CreativeShell has no editable field(s): {unknown}")
        for key, value in changes.items():
            setattr(self, key, value)
        if changes.get("landing_page") and "landing_page_with_utm" not in changes:
            self.landing_page_with_utm = generate_utm_url(self.landing_page, self.utm_parameters)
        return self

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


EDITABLE_CREATIVE_FIELDS = frozenset(item.name for item in fields(CreativeShell)) - {"id"}


@dataclass
class TargetingLayer:
    audience_name: str = ""
    line_item_name: str = ""
    creatives: list[CreativeShell] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CampaignShell:
    name: str
    channel: str
    platform: str
    objective: str
    placements: str
    impressions: str
    working_media_budget: str
    category: str = UNCATEGORIZED
    taxonomy_name: str = ""
    start_date: str = ""
    end_date: str = ""
    targeting_layers: list[TargetingLayer] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def create_targeting_layer(audience_name: str = "", line_item_name: str = "") -> TargetingLayer:
    return TargetingLayer(audience_name=audience_name, line_item_name=line_item_name)


def create_creative_shell(
    name: str,
    landing_page: str = "",
    asset_link: str | None = None,
    video_url: str | None = None,
    taxonomy_name: str = "",
) -> CreativeShell:
    utm_parameters = UTMParameters()
    return CreativeShell(
        name=name,
        landing_page=landing_page,
        landing_page_with_utm=generate_utm_url(landing_page, utm_parameters),
        taxonomy_name=taxonomy_name,
        asset_link=asset_link,
        video_url=video_url,
        utm_parameters=utm_parameters,
    )


def duplicate_creative_shell(creative: CreativeShell, new_name: str | None = None) -> CreativeShell:
    return replace(
        creative,
        id=new_id(),
        name=new_name or creative.name,
        utm_parameters=replace(creative.utm_parameters),
    )


def duplicate_targeting_layer(layer: TargetingLayer, new_audience_name: str | None = None) -> TargetingLayer:
    return replace(
        layer,
        id=new_id(),
        audience_name=new_audience_name or layer.audience_name,
        creatives=[duplicate_creative_shell(creative) for creative in layer.creatives],
    )


def shell_display_name(row: NormalizedRow) -> str:
    channel = row.channel or ""
    tactic = row.tactic or ""
    platform = (row.platform or "").lower()
    if platform and platform in tactic.lower():
        return tactic.strip()
    return f"{channel} {tactic}".strip()


def usable_audience(text: str | None) -> str:
    """Return ``text`` when it reads like an audience label, else ``""``."""
    value = text or ""
    stripped = value.strip()
    if not stripped or len(stripped) <= 2:
        return ""
    if parse_number(stripped) is not None:
        return ""
    upper = stripped.upper()
    if any(marker in upper for marker in AUDIENCE_REJECT_MARKERS):
        return ""
    return value


def build_shell(row: NormalizedRow) -> CampaignShell:
    return CampaignShell(
        name=shell_display_name(row),
        channel=row.channel,
        platform=row.platform,
        objective=row.objective,
        placements=row.placements,
        impressions=row.impressions_grps,
        working_media_budget=row.total_working_media_budget,
        category=row.category or UNCATEGORIZED,
        start_date=row.start_date,
        end_date=row.end_date,
        targeting_layers=[create_targeting_layer(usable_audience(row.demo_targeting), "")],
    )

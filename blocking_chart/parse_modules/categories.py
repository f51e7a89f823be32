from __future__ import annotations

from blocking_chart.parse_modules.shared import (
    BRAND_SAY_DIGITAL,
    BRAND_SAY_SOCIAL,
    OTHER_SAY_SOCIAL,
    UNCATEGORIZED,
)

# Digital keywords are checked before social ones, so "youtube" is always digital.
CATEGORY_RULES: list[tuple[str, tuple[str, ...]]] = [
    (
        BRAND_SAY_DIGITAL,
        (
            "digital video",
            "digital display",
            "display banners",
            "skippable",
            "online video",
            "search",
            "programmatic",
            "trade desk",
            "the trade desk",
            "dv360",
            "google ads",
            "youtube",
            "display",
        ),
    ),
    (
        BRAND_SAY_SOCIAL,
        (
            "paid social",
            "social",
            "meta",
            "facebook",
            "instagram",
            "tiktok",
            "pinterest",
            "twitter",
            "linkedin",
            "snapchat",
            "in-feed",
            "video pins",
            "static pins",
            "idea ads",
        ),
    ),
    (
        OTHER_SAY_SOCIAL,
        ("influencer", "ugc", "user generated", "creator", "partnership", "sponsored"),
    ),
]


def categorize(channel: str | None, platform: str | None) -> str:
    combined = f"{channel or ''} {platform or ''}".lower()
    for category, keywords in CATEGORY_RULES:
        if any(keyword in combined for keyword in keywords):
            return category
    return UNCATEGORIZED

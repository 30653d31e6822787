"""
Formats candidate apps into a prompt-ready text block for the LLM.

Pure functions only: the same candidates always produce the same text.
"""

import json
import logging
from typing import Any, Optional

from .models import CandidateItem


logger = logging.getLogger(__name__)


MARKET_FLAGS = {
    "US": "🇺🇸", "GB": "🇬🇧", "FR": "🇫🇷", "DE": "🇩🇪", "IT": "🇮🇹",
    "ES": "🇪🇸", "CA": "🇨🇦", "AU": "🇦🇺", "JP": "🇯🇵", "KR": "🇰🇷",
    "BR": "🇧🇷", "MX": "🇲🇽", "NL": "🇳🇱", "SE": "🇸🇪", "NO": "🇳🇴",
    "DK": "🇩🇰", "FI": "🇫🇮", "PL": "🇵🇱", "CH": "🇨🇭", "AT": "🇦🇹",
    "BE": "🇧🇪", "PT": "🇵🇹", "IE": "🇮🇪", "NZ": "🇳🇿", "SG": "🇸🇬",
    "HK": "🇭🇰", "TW": "🇹🇼", "IN": "🇮🇳", "RU": "🇷🇺", "ZA": "🇿🇦",
}

DEFAULT_FLAG = "🌍"

SEPARATOR = "─" * 30


def market_flag(country_code: Optional[str]) -> str:
    """Get the flag glyph for a market code, or a globe if unknown."""
    if not country_code:
        return DEFAULT_FLAG
    return MARKET_FLAGS.get(country_code.upper(), DEFAULT_FLAG)


def developer_tier(dev_app_count: Optional[int]) -> str:
    """Classify a developer by how many apps they have in today's picks."""
    count = dev_app_count or 1
    if count == 1:
        return "indie"
    if count <= 3:
        return "small team"
    return "publisher"


def _parse_daily_stats(raw: Any) -> Optional[dict]:
    """Decode the daily stats blob; returns None if absent or unparseable."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to parse daily_stats: {e}")
        return None
    if not isinstance(parsed, dict):
        logger.error(f"daily_stats is not an object: {type(parsed).__name__}")
        return None
    return parsed


def _format_stats_header(stats: dict) -> str:
    lines = [
        "📊 DAILY OVERVIEW:",
        f"• Total apps detected: {stats.get('total_apps', 'n/a')}",
        f"• New apps (< 6 months): {stats.get('new_apps', 'n/a')}",
        f"• Free: {stats.get('free_apps', 'n/a')} | Paid: {stats.get('paid_apps', 'n/a')}",
        f"• Average score: {stats.get('avg_score', 'n/a')}",
        "",
        "🔥 CLUSTERS (categories with 2+ apps = HOT NICHES):",
    ]
    for cluster in stats.get("clusters") or []:
        if isinstance(cluster, dict):
            lines.append(f"• {cluster.get('name')}: {cluster.get('count')} apps")
    lines.append("")
    return "\n".join(lines) + "\n"


def _format_item(item: CandidateItem) -> str:
    dev_count = item.dev_app_count or 1
    plural = "s" if dev_count > 1 else ""
    markets = ", ".join(item.countries)
    rank = f"#{item.best_rank}" if item.best_rank is not None else "unranked"
    new_label = "Yes (< 6 months)" if item.is_new else "No (established)"

    return "\n".join([
        SEPARATOR,
        f"📲 {item.name}",
        f"   Developer: {item.developer or 'Unknown'} "
        f"({developer_tier(dev_count)}, {dev_count} app{plural})",
        f"   Category: {item.category}",
        f"   Rank: {rank} in {item.best_country or 'unknown market'} {market_flag(item.best_country)}",
        f"   Countries: {markets} ({item.country_count or len(item.countries)} markets)",
        f"   Score: {item.total_score if item.total_score is not None else 'n/a'}/100",
        f"   New app: {new_label}",
        f"   Category competition: {item.category_apps_count or 0} apps in same category today",
        "",
    ])


def format_for_analysis(items: list[CandidateItem]) -> str:
    """
    Serialize candidates and the day's aggregate stats for the LLM.

    The stats header is read from the first item (it is the same for
    every pick of the day) and omitted if it cannot be parsed.

    Args:
        items: Selected candidates, in selection order.

    Returns:
        Text block with an optional stats header and one paragraph per item.
    """
    text = "=== TODAY'S APP STORE INTELLIGENCE ===\n\n"

    stats = _parse_daily_stats(items[0].daily_stats) if items else None
    if stats:
        text += _format_stats_header(stats)

    text += "📱 APPS IN TODAY'S PICKS:\n\n"
    text += "\n".join(_format_item(item) for item in items)

    return text

"""
Newsletter HTML rendering.

Turns a validated analysis into a self-contained HTML email. No external
calls and no validation: input is assumed to have passed parse_analysis().
"""

import html
import re
from datetime import date
from typing import Optional

from .models import AnalysisResult, FeaturedApp, Niche


# Badge display per developer classification
DEV_TYPE_CONFIG = {
    "indie": {"label": "Indie", "color": "#00CC6A"},
    "small_studio": {"label": "Small Studio", "color": "#3498DB"},
    "small team": {"label": "Small Team", "color": "#3498DB"},
    "publisher": {"label": "Publisher", "color": "#9B59B6"},
}

DEFAULT_DEV_TYPE = {"label": "Developer", "color": "#888888"}

SITE_URL = "https://nicheshunter.app"


EMAIL_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <meta name="color-scheme" content="light dark">
    <title>{title}</title>
    <style>
        body {{
            margin: 0;
            padding: 0;
            background-color: #ffffff;
            -webkit-text-size-adjust: 100%;
        }}
        .container {{
            max-width: 600px;
            margin: 0 auto;
            padding: 20px;
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif;
            color: #333;
        }}
        .brand {{
            font-size: 11px;
            font-weight: 700;
            color: #00CC6A;
            text-transform: uppercase;
            letter-spacing: 2px;
            margin-bottom: 16px;
        }}
        .header {{
            padding-bottom: 24px;
            text-align: center;
        }}
        .header h1 {{
            font-size: 24px;
            font-weight: 800;
            color: #111;
            margin: 0 0 8px 0;
            line-height: 1.3;
        }}
        .date {{
            font-size: 14px;
            color: #888;
        }}
        .hook {{
            margin-bottom: 32px;
            padding: 16px 20px;
            background: rgba(0,204,106,0.06);
            border-left: 3px solid #00CC6A;
            border-radius: 0 8px 8px 0;
            font-size: 15px;
            font-style: italic;
            line-height: 1.7;
        }}
        .niche {{
            margin-bottom: 32px;
            padding: 20px;
            background: #fafafa;
            border-radius: 8px;
            border-left: 4px solid;
        }}
        .niche h2 {{
            font-size: 18px;
            margin: 0 0 10px 0;
            color: #111;
        }}
        .scores {{
            margin-bottom: 14px;
            font-size: 12px;
            color: #666;
        }}
        .label {{
            font-size: 11px;
            font-weight: 700;
            text-transform: uppercase;
            letter-spacing: 1px;
            color: #888;
            margin: 14px 0 4px 0;
        }}
        .niche p {{
            margin: 0;
            font-size: 15px;
            line-height: 1.6;
        }}
        .app {{
            margin-top: 16px;
            padding-left: 14px;
            border-left: 3px solid #e0e0e0;
        }}
        .app-name {{
            font-size: 16px;
            font-weight: 700;
            color: #111;
        }}
        .app-meta {{
            font-size: 13px;
            color: #888;
            margin-left: 6px;
        }}
        .badge {{
            display: inline-block;
            padding: 2px 8px;
            border-radius: 4px;
            font-size: 11px;
            font-weight: 600;
            color: #ffffff;
            margin: 4px 0 6px 0;
        }}
        .action {{
            margin-top: 40px;
            background: #111;
            color: #fff;
            padding: 24px;
            border-radius: 8px;
        }}
        .action .label {{
            color: #00CC6A;
            margin-top: 0;
        }}
        .action p {{
            margin: 0;
            font-size: 15px;
            line-height: 1.6;
        }}
        .footer {{
            margin-top: 40px;
            padding-top: 20px;
            border-top: 1px solid #eee;
            text-align: center;
            font-size: 12px;
            color: #aaa;
        }}
        .footer a {{
            color: #00CC6A;
            text-decoration: none;
        }}
        @media (prefers-color-scheme: dark) {{
            body, .container {{ background-color: #000000 !important; color: #d0d0d0 !important; }}
            .header h1, .niche h2, .app-name {{ color: #ffffff !important; }}
            .niche {{ background-color: #111111 !important; }}
            .action {{ background-color: #1a1a1a !important; border: 1px solid #333 !important; }}
        }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <div class="brand">Niches Hunter</div>
            <h1>{title}</h1>
            <div class="date">{formatted_date} • Daily Intel</div>
        </div>

        <div class="hook">{hook}</div>

        {niches_html}

        <div class="action">
            <div class="label">⚡ Action of the day</div>
            <p>{action}</p>
        </div>

        <div class="footer">
            <a href="{site_url}">Niches Hunter</a> • Daily Intelligence
            <br><br>
            <a href="{site_url}/unsubscribe" style="color: #999; text-decoration: underline;">Unsubscribe</a>
        </div>
    </div>
</body>
</html>
"""

NICHE_TEMPLATE = """
<div class="niche" style="border-color: {color};">
    <h2>{emoji}{name}</h2>
    <div class="scores">Competition: {competition_bar} &nbsp; Potential: {potential_bar}</div>
    {intro_html}
    <div class="label">🔥 Why it's hot</div>
    <p>{why_hot}</p>
    <div class="label">🕳️ The gap</div>
    <p>{gap}</p>
    {apps_html}
</div>
"""

APP_TEMPLATE = """
<div class="app">
    <span class="app-name">{name}</span><span class="app-meta">#{rank} {flag} {country}</span><br>
    <span class="badge" style="background-color: {badge_color};">{badge_label}</span>
    <p>{insight}</p>
</div>
"""


def _escape(text: str) -> str:
    return html.escape(text or "", quote=True)


def score_color(score: float) -> str:
    """Get the accent color for a 0-100 score."""
    if score >= 80:
        return "#00CC6A"
    if score >= 60:
        return "#F39C12"
    if score >= 40:
        return "#FF9F43"
    return "#E74C3C"


def progress_bar(score: float) -> str:
    """Render a 10-segment text progress bar for a 0-100 score."""
    percent = int(round(score))
    filled = max(0, min(10, int(round(percent / 10))))
    return (
        '<span style="font-family: monospace; white-space: nowrap;">'
        f'<span style="color: {score_color(percent)};">{"▮" * filled}</span>'
        f'<span style="color: #e0e0e0;">{"▮" * (10 - filled)}</span>'
        f'</span> {percent}%'
    )


def _dev_type_badge(dev_type: str) -> dict:
    """Get badge config for a developer classification, falling back to a default."""
    key = (dev_type or "").strip().lower().replace("-", "_")
    return DEV_TYPE_CONFIG.get(key, DEFAULT_DEV_TYPE)


def _to_line_breaks(text: str) -> str:
    """Escape text and put each sentence on its own line."""
    sentences = [s.strip() for s in re.split(r"\.\s+(?=[A-Z])", text) if s.strip()]
    if len(sentences) <= 1:
        return _escape(text)

    parts = []
    for sentence in sentences:
        if not sentence.endswith((".", "!", "?")):
            sentence += "."
        parts.append(_escape(sentence))
    return "<br><br>".join(parts)


def _render_app(app: FeaturedApp) -> str:
    badge = _dev_type_badge(app.dev_type)
    return APP_TEMPLATE.format(
        name=_escape(app.name),
        rank=app.rank,
        flag=_escape(app.flag),
        country=_escape(app.country),
        badge_color=badge["color"],
        badge_label=badge["label"],
        insight=_escape(app.insight),
    )


def _render_niche(niche: Niche) -> str:
    intro_html = f"<p>{_escape(niche.intro)}</p>" if niche.intro else ""
    emoji = f"{_escape(niche.emoji)} " if niche.emoji else ""

    return NICHE_TEMPLATE.format(
        color=score_color(niche.potential),
        emoji=emoji,
        name=_escape(niche.name),
        competition_bar=progress_bar(niche.competition),
        potential_bar=progress_bar(niche.potential),
        intro_html=intro_html,
        why_hot=_to_line_breaks(niche.why_hot),
        gap=_to_line_breaks(niche.gap),
        apps_html="\n".join(_render_app(app) for app in niche.apps),
    )


def render_newsletter_html(analysis: AnalysisResult, run_date: Optional[date] = None) -> str:
    """
    Build the newsletter HTML document.

    Args:
        analysis: Validated analysis.
        run_date: Date shown when the analysis carries none (defaults to today).

    Returns:
        Complete HTML email string.
    """
    formatted_date = analysis.date or (run_date or date.today()).strftime("%B %d, %Y")

    return EMAIL_TEMPLATE.format(
        title=_escape(analysis.title),
        formatted_date=_escape(formatted_date),
        hook=_escape(analysis.hook),
        niches_html="\n".join(_render_niche(niche) for niche in analysis.niches),
        action=_escape(analysis.action),
        site_url=SITE_URL,
    )

"""
Persistence and delivery of a finished newsletter.

Runs the post-analysis steps in order: save newsletter, save niche
drafts, record cooldowns, fetch subscribers, send emails.
"""

import logging
import time
from dataclasses import asdict
from datetime import date
from typing import Callable

from .cooldown import DEFAULT_COOLDOWN_DAYS, record_cooldown
from .email_client import DEFAULT_SEND_DELAY, send_newsletter_batch
from .models import AnalysisResult, DeliveryReport, NewsletterRecord, Niche, Subscriber


NEWSLETTERS_TABLE = "newsletters_v2"
NICHE_DRAFTS_TABLE = "niche_drafts"
SUBSCRIBERS_TABLE = "newsletter_subscribers"


logger = logging.getLogger(__name__)


def save_newsletter(store, html_body: str, title: str, run_date: date) -> None:
    """Save the newsletter, replacing any earlier one for the same run date."""
    record = NewsletterRecord(content=html_body, title=title, run_date=run_date)
    store.upsert(NEWSLETTERS_TABLE, record.to_row(), on_conflict="run_date")
    logger.info(f"Newsletter saved: \"{title}\" ({run_date.isoformat()})")


def save_niche_draft(store, niche: Niche, run_date: date) -> None:
    """Save one niche as an unprocessed draft."""
    store.insert(NICHE_DRAFTS_TABLE, {
        "title": niche.name,
        "apps": [asdict(app) for app in niche.apps],
        "summary": niche.why_hot,
        "newsletter_date": run_date.isoformat(),
        "processed": False,
    })
    logger.info(f"Niche draft saved: \"{niche.name}\" ({', '.join(a.name for a in niche.apps)})")


def get_active_subscribers(store) -> list[Subscriber]:
    """Get every subscriber whose status is 'subscribed'."""
    rows = store.select(SUBSCRIBERS_TABLE, filters=[("status", "eq", "subscribed")])
    return [Subscriber.from_row(row) for row in rows]


def dispatch(
    store,
    email_client,
    analysis: AnalysisResult,
    html_body: str,
    niche_app_ids: list[list[str]],
    run_date: date,
    cooldown_days: int = DEFAULT_COOLDOWN_DAYS,
    send_delay: float = DEFAULT_SEND_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> DeliveryReport:
    """
    Persist the run's results and deliver the newsletter.

    Steps:
    1. Upsert the newsletter for `run_date`
    2. Save one draft per niche
    3. Record cooldowns for the reconciled app_ids
    4. Fetch subscribed subscribers
    5. Send the HTML to each one, paced by `send_delay`

    Args:
        store: Store exposing select/upsert/insert.
        email_client: Client exposing send(to, subject, html_body).
        analysis: Validated analysis.
        html_body: Rendered newsletter.
        niche_app_ids: Reconciled app_ids per niche.
        run_date: Date the newsletter is filed under.
        cooldown_days: Cooldown length for featured apps.
        send_delay: Seconds between consecutive sends.
        sleep: Sleep function (injectable for tests).

    Returns:
        DeliveryReport with sent and failed counts.

    Raises:
        StoreError: If saving the newsletter/drafts or fetching subscribers fails.
    """
    save_newsletter(store, html_body, analysis.title, run_date)

    for niche in analysis.niches:
        save_niche_draft(store, niche, run_date)

    total_cooldowns = 0
    for niche, app_ids in zip(analysis.niches, niche_app_ids):
        if app_ids:
            total_cooldowns += record_cooldown(store, niche.name, app_ids, duration_days=cooldown_days)
    logger.info(f"{total_cooldowns} apps added to {cooldown_days}-day cooldown")

    subscribers = get_active_subscribers(store)
    emails = [s.email for s in subscribers if s.email]
    logger.info(f"Found {len(emails)} active subscribers")

    return send_newsletter_batch(
        email_client,
        emails,
        analysis.title,
        html_body,
        delay_seconds=send_delay,
        sleep=sleep,
    )

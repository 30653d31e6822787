"""
Daily newsletter pipeline.

Orchestrates one run: cooldowns → candidates → analysis → render →
save + send → notify. Any error is reported to the operations chat once
and then re-raised.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional

from .analyzer import DEFAULT_APP_COUNTS, analyze
from .config import Config
from .cooldown import list_active_exclusions
from .dispatcher import dispatch
from .formatter import format_for_analysis
from .models import DeliveryReport
from .notifier import SKIP_MESSAGE, format_failure_message, format_success_message, safe_notify
from .ports import Ports
from .reconciler import reconcile
from .renderer import render_newsletter_html
from .selection import select_candidates


logger = logging.getLogger(__name__)


STATUS_SENT = "sent"
STATUS_SKIPPED = "skipped"

# Held for the duration of a run; a second concurrent run is rejected
_run_lock = threading.Lock()


class RunInProgressError(Exception):
    """Raised when a run is triggered while another is still running."""
    pass


@dataclass
class RunResult:
    """Summary of one pipeline run."""

    status: str
    title: Optional[str] = None
    niche_app_ids: list[list[str]] = field(default_factory=list)
    report: Optional[DeliveryReport] = None


def is_running() -> bool:
    """Whether a run is currently in progress in this process."""
    return _run_lock.locked()


def run_newsletter(
    ports: Ports,
    config: Optional[Config] = None,
    today: Optional[date] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunResult:
    """
    Execute the daily newsletter pipeline once.

    Steps:
    1. Load apps in cooldown
    2. Select candidates excluding them (skip the run if none are left)
    3. Format candidates for the LLM
    4. Analyze and validate
    5. Map featured apps back to app_ids
    6. Render HTML
    7. Save newsletter, drafts, cooldowns; email subscribers
    8. Notify the operations chat

    Args:
        ports: External collaborators.
        config: Run settings (defaults used when omitted).
        today: Run date (defaults to today).
        sleep: Sleep function used between email sends.

    Returns:
        RunResult describing what happened.

    Raises:
        RunInProgressError: If another run is in progress.
        Exception: Whatever stopped the run, after a failure notification.
    """
    if not _run_lock.acquire(blocking=False):
        raise RunInProgressError("A newsletter run is already in progress")

    try:
        return _run(ports, config or Config(), today or date.today(), sleep)
    except Exception as e:
        logger.error(f"Newsletter generation failed: {e}")
        safe_notify(ports.notifier, format_failure_message(e))
        raise
    finally:
        _run_lock.release()


def _run(ports: Ports, config: Config, today: date, sleep: Callable[[float], None]) -> RunResult:
    logger.info("Step 1: Checking apps in cooldown...")
    excluded = list_active_exclusions(ports.store)

    logger.info("Step 2: Fetching daily picks...")
    candidates = select_candidates(ports.store, limit=config.candidate_limit, excluded_ids=excluded)

    if not candidates:
        logger.warning("No daily picks found (all in cooldown?). Skipping newsletter generation.")
        safe_notify(ports.notifier, SKIP_MESSAGE)
        return RunResult(status=STATUS_SKIPPED)

    for candidate in candidates[:10]:
        logger.info(f"  • {candidate.name} ({candidate.app_id}) - {candidate.category}")
    if len(candidates) > 10:
        logger.info(f"  ... and {len(candidates) - 10} more")

    logger.info("Step 3: Formatting data for AI analysis...")
    opportunities_text = format_for_analysis(candidates)

    logger.info(f"Step 4: Analyzing with {config.openai_model}...")
    analysis = analyze(opportunities_text, ports.reasoner, app_counts=DEFAULT_APP_COUNTS, today=today)

    logger.info("Step 5: Mapping featured apps to app_ids...")
    niche_app_ids = reconcile(analysis, candidates)

    logger.info("Step 6: Generating newsletter HTML...")
    html_body = render_newsletter_html(analysis, run_date=today)
    logger.info(f"HTML generated ({len(html_body)} characters)")

    logger.info("Step 7: Saving and sending...")
    report = dispatch(
        ports.store,
        ports.email_client,
        analysis,
        html_body,
        niche_app_ids,
        run_date=today,
        cooldown_days=config.cooldown_days,
        send_delay=config.email_send_delay,
        sleep=sleep,
    )

    logger.info("Step 8: Sending Telegram notification...")
    safe_notify(ports.notifier, format_success_message(analysis, niche_app_ids, report))

    logger.info("Newsletter generation complete!")
    return RunResult(
        status=STATUS_SENT,
        title=analysis.title,
        niche_app_ids=niche_app_ids,
        report=report,
    )

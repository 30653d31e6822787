"""
Cooldown tracking for featured apps.

Apps featured in a newsletter go into a cooldown (one row per app in
`published_niche_history`) and are excluded from selection until the
cooldown expires. Expiry is purely a timestamp comparison; rows are
never deleted.
"""

import logging
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Union

from .models import CooldownRecord
from .store import StoreError


COOLDOWN_TABLE = "published_niche_history"

DEFAULT_COOLDOWN_DAYS = 10


logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Union[str, datetime]) -> Optional[datetime]:
    """Parse a store timestamp into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def list_active_exclusions(store, now: Optional[datetime] = None) -> set[str]:
    """
    Get every app_id currently under a cooldown.

    A cooldown is active only while `cooldown_until > now`; a row expiring
    exactly at `now` is already expired.

    Args:
        store: Store exposing select().
        now: Reference time (defaults to current UTC time).

    Returns:
        Set of excluded app_ids.

    Raises:
        StoreError: If the cooldown query fails.
    """
    now = now or _utc_now()

    rows = store.select(
        COOLDOWN_TABLE,
        filters=[("cooldown_until", "gt", now.isoformat())],
    )

    excluded: set[str] = set()
    for row in rows:
        until = _parse_timestamp(row.get("cooldown_until", ""))
        if until is not None and until <= now:
            continue

        for app_id in row.get("source_app_ids") or []:
            if app_id in excluded:
                continue
            excluded.add(app_id)
            until_label = until.date().isoformat() if until else row.get("cooldown_until")
            logger.info(
                f"In cooldown: {app_id} (niche: {row.get('niche_pattern')}) until {until_label}"
            )

    if excluded:
        logger.info(f"Total apps in cooldown: {len(excluded)}")
    else:
        logger.info("No apps in cooldown")

    return excluded


def record_cooldown(
    store,
    niche_label: str,
    app_ids: Iterable[str],
    duration_days: int = DEFAULT_COOLDOWN_DAYS,
    now: Optional[datetime] = None,
) -> int:
    """
    Put featured apps into cooldown, one row per app.

    Each insert is attempted independently; a failed write is logged and
    the remaining apps are still recorded.

    Args:
        store: Store exposing insert().
        niche_label: Niche the apps were featured under.
        app_ids: App identifiers to exclude from upcoming runs.
        duration_days: Cooldown length in days.
        now: Reference time (defaults to current UTC time).

    Returns:
        Number of cooldown rows written.
    """
    now = now or _utc_now()
    cooldown_until = (now + timedelta(days=duration_days)).isoformat()

    written = 0
    for app_id in app_ids:
        try:
            record = CooldownRecord(
                niche_pattern=niche_label,
                source_app_ids=[app_id],
                cooldown_until=cooldown_until,
            )
            store.insert(COOLDOWN_TABLE, asdict(record))
            written += 1
            logger.info(f"Cooldown saved: {app_id} ({niche_label})")
        except StoreError as e:
            logger.error(f"Failed to save cooldown for {app_id}: {e}")

    return written

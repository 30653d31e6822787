"""
Candidate selection logic.

Picks today's candidate apps from the daily picks, skipping anything
still in cooldown.
"""

import logging
from typing import Collection

from .models import CandidateItem


DAILY_PICKS_TABLE = "daily_picks_v2"

DEFAULT_CANDIDATE_LIMIT = 30


logger = logging.getLogger(__name__)


def select_candidates(
    store,
    limit: int = DEFAULT_CANDIDATE_LIMIT,
    excluded_ids: Collection[str] = (),
) -> list[CandidateItem]:
    """
    Select up to `limit` daily picks that are not in cooldown.

    Selection strategy:
    1. Fetch `limit + len(excluded_ids)` rows so that dropping excluded
       apps still leaves enough candidates.
    2. Drop every row whose app_id is excluded.
    3. Truncate to `limit`, keeping the store's order.

    Args:
        store: Store exposing select().
        limit: Maximum number of candidates to return.
        excluded_ids: App identifiers currently in cooldown.

    Returns:
        List of up to `limit` candidates (empty if none are eligible).

    Raises:
        StoreError: If the daily picks query fails.
    """
    excluded = set(excluded_ids)
    rows = store.select(DAILY_PICKS_TABLE, limit=limit + len(excluded))

    if not rows:
        logger.warning("No daily picks found")
        return []

    candidates = [CandidateItem.from_row(row) for row in rows]

    if excluded:
        kept = [c for c in candidates if c.app_id not in excluded]
        dropped = [c for c in candidates if c.app_id in excluded]
        logger.info(
            f"Filtered: {len(candidates)} → {len(kept)} apps "
            f"(excluded {len(dropped)} in cooldown)"
        )
        for candidate in dropped:
            logger.info(f"  Excluded: {candidate.name} ({candidate.app_id})")
        candidates = kept

    selected = candidates[:limit]
    logger.info(f"Returning {len(selected)} daily picks")
    return selected

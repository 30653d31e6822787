"""
Maps featured app names from the analysis back to candidate app_ids.

The LLM only returns display names, so ids are recovered with a
case-insensitive substring match in either direction. The first
candidate that matches wins; apps with no match are skipped.
"""

import logging
from typing import Optional

from .models import AnalysisResult, CandidateItem


logger = logging.getLogger(__name__)


def find_candidate(app_name: str, candidates: list[CandidateItem]) -> Optional[CandidateItem]:
    """Return the first candidate whose name contains, or is contained in, `app_name`."""
    needle = app_name.strip().lower()
    if not needle:
        return None

    for candidate in candidates:
        name = candidate.name.strip().lower()
        if name and (name in needle or needle in name):
            return candidate
    return None


def reconcile(analysis: AnalysisResult, candidates: list[CandidateItem]) -> list[list[str]]:
    """
    Resolve each niche's featured apps to candidate app_ids.

    Args:
        analysis: Validated analysis.
        candidates: Candidates that were sent to the LLM, in selection order.

    Returns:
        One list of app_ids per niche, in featured order. A list may be
        shorter than the niche's app count when names do not match.
    """
    logger.info("Mapping app names to app_ids...")
    niche_app_ids: list[list[str]] = []

    for niche in analysis.niches:
        app_ids: list[str] = []
        for app in niche.apps:
            candidate = find_candidate(app.name, candidates)
            if candidate is None:
                logger.warning(f"  {app.name} → NOT FOUND in daily picks")
                continue
            app_ids.append(candidate.app_id)
            logger.info(f"  {app.name} → {candidate.app_id}")
        niche_app_ids.append(app_ids)

    return niche_app_ids

"""Test doubles and row/payload builders shared by the test modules."""

from datetime import datetime
from typing import Any, Callable, Optional

from niche_bot.models import CandidateItem
from niche_bot.store import FILTER_OPS, StoreError


def _comparable(value: Any) -> Any:
    """Parse ISO timestamps so they compare chronologically."""
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value


_OPS = {
    "eq": lambda a, b: a == b,
    "gt": lambda a, b: a > b,
    "gte": lambda a, b: a >= b,
    "lt": lambda a, b: a < b,
    "lte": lambda a, b: a <= b,
}


class FakeStore:
    """In-memory stand-in for SupabaseStore."""

    def __init__(self, tables: Optional[dict[str, list[dict]]] = None):
        self.tables: dict[str, list[dict]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self.select_calls: list[tuple[str, list, Optional[int]]] = []
        self.fail_insert: Optional[Callable[[str, dict], bool]] = None
        self.fail_select: set[str] = set()

    def rows(self, table: str) -> list[dict]:
        return self.tables.setdefault(table, [])

    def select(self, table, filters=(), limit=None):
        filters = list(filters)
        self.select_calls.append((table, filters, limit))
        if table in self.fail_select:
            raise StoreError(f"Query on {table} failed")

        result = []
        for row in self.rows(table):
            matched = True
            for column, op, value in filters:
                assert op in FILTER_OPS
                if not _OPS[op](_comparable(row.get(column)), _comparable(value)):
                    matched = False
                    break
            if matched:
                result.append(dict(row))
        return result[:limit] if limit is not None else result

    def upsert(self, table, row, on_conflict):
        rows = self.rows(table)
        for i, existing in enumerate(rows):
            if existing.get(on_conflict) == row.get(on_conflict):
                rows[i] = dict(row)
                return
        rows.append(dict(row))

    def insert(self, table, row):
        if self.fail_insert and self.fail_insert(table, row):
            raise StoreError(f"Insert into {table} failed")
        self.rows(table).append(dict(row))


class FakeNotifier:
    """Records every message instead of posting it."""

    def __init__(self, raises: bool = False):
        self.messages: list[str] = []
        self.raises = raises

    def notify(self, message):
        self.messages.append(message)
        if self.raises:
            raise RuntimeError("telegram down")
        return True


class FakeEmailClient:
    """Records sends; raises for addresses listed in `failing`."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.sent_to: list[str] = []
        self.attempted: list[str] = []

    def send(self, to, subject, html_body):
        self.attempted.append(to)
        if to in self.failing:
            raise RuntimeError(f"rejected {to}")
        self.sent_to.append(to)


class FakeReasoner:
    """Returns a canned response and keeps the prompts it received."""

    def __init__(self, response: str = ""):
        self.response = response
        self.prompts: list[str] = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        return self.response


def make_pick_row(app_id: str, name: str, **overrides) -> dict:
    """Helper to create a raw daily_picks_v2 row."""
    row = {
        "app_id": app_id,
        "name": name,
        "developer": f"{name} Labs",
        "dev_app_count": 1,
        "category": "6000",
        "category_name": "Health & Fitness",
        "best_rank": 12,
        "best_country": "US",
        "countries": ["US", "GB"],
        "country_count": 2,
        "total_score": 78,
        "is_new": False,
        "category_apps_count": 4,
    }
    row.update(overrides)
    return row


def make_candidate(app_id: str, name: str, **overrides) -> CandidateItem:
    """Helper to create a candidate item."""
    return CandidateItem.from_row(make_pick_row(app_id, name, **overrides))


def make_analysis_payload(niche_app_counts=(2, 1)) -> dict:
    """Helper to create a well-formed analysis response payload."""
    app_pool = [
        {"name": "Sleep Cycle", "rank": 12, "country": "US", "flag": "🇺🇸",
         "dev_type": "indie", "insight": "Solo dev ranking top 20 with a paid tier."},
        {"name": "Rain Sounds", "rank": 8, "country": "FR", "flag": "🇫🇷",
         "dev_type": "small_studio", "insight": "Dated UI but strong reviews."},
        {"name": "Pet Pal", "rank": 15, "country": "DE", "flag": "🇩🇪",
         "dev_type": "indie", "insight": "Reminders for pet owners with subscriptions."},
        {"name": "Fast Habit", "rank": 22, "country": "GB", "flag": "🇬🇧",
         "dev_type": "publisher", "insight": "Big publisher, slow to ship."},
    ]
    niche_names = ["Sleep Sound Apps", "Pet Care Reminders", "Fasting Trackers"]

    niches = []
    offset = 0
    for i, count in enumerate(niche_app_counts):
        niches.append({
            "name": niche_names[i % len(niche_names)],
            "emoji": "🎯",
            "cluster_size": 3,
            "intro": "People who struggle to fall asleep.",
            "why_hot": "Two indie apps rank in the top 20. Users already pay.",
            "gap": "No app combines sounds with sleep tracking.",
            "competition": 40,
            "potential": 85,
            "apps": [app_pool[(offset + j) % len(app_pool)] for j in range(count)],
        })
        offset += count

    return {
        "title": "Sleep Apps Are Printing Money 💤",
        "date": "October 19, 2026",
        "hook": "Three indie sleep apps cracked the US top 20 this week.",
        "niches": niches,
        "action": "Build a sleep sound app for new parents with baby-safe timers.",
    }

"""
Data models shared across the pipeline.

Rows coming from the store are normalized into these dataclasses at the
edges; everything in between works with typed objects.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional


@dataclass
class CandidateItem:
    """An app opportunity eligible to be featured in a newsletter run."""

    app_id: str
    name: str
    category: str
    best_rank: Optional[int]
    best_country: Optional[str]
    daily_stats: Any = None  # dict, JSON string or None
    developer: Optional[str] = None
    dev_app_count: Optional[int] = None
    countries: list[str] = field(default_factory=list)
    country_count: Optional[int] = None
    total_score: Optional[float] = None
    is_new: bool = False
    category_apps_count: Optional[int] = None

    @classmethod
    def from_row(cls, row: dict) -> "CandidateItem":
        """Build a candidate from a raw `daily_picks_v2` row."""
        return cls(
            app_id=str(row.get("app_id", "")),
            name=row.get("name") or "",
            category=row.get("category_name") or row.get("category") or "",
            best_rank=row.get("best_rank"),
            best_country=row.get("best_country") or row.get("source_country"),
            daily_stats=row.get("daily_stats"),
            developer=row.get("developer"),
            dev_app_count=row.get("dev_app_count"),
            countries=list(row.get("countries") or []),
            country_count=row.get("country_count"),
            total_score=row.get("total_score"),
            is_new=bool(row.get("is_new")),
            category_apps_count=row.get("category_apps_count"),
        )


@dataclass
class Subscriber:
    """A newsletter subscriber."""

    id: str
    email: str
    status: str

    @classmethod
    def from_row(cls, row: dict) -> "Subscriber":
        return cls(
            id=str(row.get("id", "")),
            email=row.get("email") or "",
            status=row.get("status") or "",
        )


@dataclass
class CooldownRecord:
    """Apps excluded from selection until `cooldown_until`."""

    niche_pattern: str
    source_app_ids: list[str]
    cooldown_until: str


@dataclass
class FeaturedApp:
    """An app the analysis features as proof of a niche."""

    name: str
    rank: int
    country: str = ""
    dev_type: str = ""
    insight: str = ""
    flag: str = ""


@dataclass
class Niche:
    """A thematic group of featured apps sharing one problem space."""

    name: str
    why_hot: str
    gap: str
    competition: float
    potential: float
    apps: list[FeaturedApp]
    emoji: str = ""
    intro: str = ""
    cluster_size: Optional[int] = None


@dataclass
class AnalysisResult:
    """Validated output of the reasoning service."""

    title: str
    hook: str
    niches: list[Niche]
    action: str
    date: str = ""


@dataclass
class NewsletterRecord:
    """One rendered newsletter; unique per run date."""

    content: str
    title: str
    run_date: date

    def to_row(self) -> dict:
        return {
            "content": self.content,
            "title": self.title,
            "run_date": self.run_date.isoformat(),
        }


@dataclass
class DeliveryReport:
    """Outcome of sending the newsletter to subscribers."""

    sent: int = 0
    failed: int = 0

    @property
    def attempted(self) -> int:
        return self.sent + self.failed

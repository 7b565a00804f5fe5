"""Run summaries returned by every pipeline stage."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.models import utcnow


@dataclass
class RunSummary:
    """
    Counters for one discovery, process or expiry run.

    ``found`` counts listing rows seen; ``new`` captures or programs created;
    ``updated`` existing records rewritten; ``skipped`` duplicates touched;
    ``failed`` items that errored.
    """
    stage: str
    session_id: Optional[str] = None
    found: int = 0
    new: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    pages: int = 0
    downloaded: int = 0
    manual_review: int = 0
    expired: int = 0
    tiers: dict = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    def finish(self) -> "RunSummary":
        self.finished_at = utcnow()
        return self

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def total_cost_usd(self) -> float:
        return sum(t.get("costUsd", 0.0) for t in self.tiers.values())

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "sessionId": self.session_id,
            "found": self.found,
            "new": self.new,
            "updated": self.updated,
            "skipped": self.skipped,
            "failed": self.failed,
            "pages": self.pages,
            "downloaded": self.downloaded,
            "manualReview": self.manual_review,
            "expired": self.expired,
            "tiers": self.tiers,
            "totalCostUsd": round(self.total_cost_usd, 6),
            # Last ten only
            "errors": self.errors[-10:],
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "durationSeconds": self.duration_seconds,
        }

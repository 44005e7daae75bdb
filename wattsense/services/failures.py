"""Failure log for the budget jobs and the status read.

Holds the most recent failures in memory, tagged with where they happened
and which budget or user they concern. Served at ``/api/errors``.
"""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any


class FailureSource(str, Enum):
    BUDGET_STATUS = "budget_status"
    BUDGET_ALERT_SWEEP = "budget_alert_sweep"
    MONTHLY_SUMMARY = "monthly_summary"
    BUDGET_ALERT_LOOP = "budget_alert_loop"
    MONTHLY_SUMMARY_LOOP = "monthly_summary_loop"


@dataclass(frozen=True)
class Failure:
    source: FailureSource
    kind: str            # exception class, or "send_failed" for a notifier result
    message: str
    subject_id: str | None
    at: datetime

    def as_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.value,
            "kind": self.kind,
            "message": self.message,
            "subject_id": self.subject_id,
            "at": self.at.isoformat(),
        }


class ErrorTracker:
    """Bounded, thread-safe log of recent failures; oldest entries drop off."""

    def __init__(self, capacity: int = 500):
        self._entries: deque[Failure] = deque(maxlen=capacity)
        self._lock = Lock()

    def record(
        self,
        source: FailureSource | str,
        error: Exception | str,
        subject_id: str | None = None,
    ) -> Failure:
        failure = Failure(
            source=FailureSource(source),
            kind=type(error).__name__ if isinstance(error, Exception) else "send_failed",
            message=str(error),
            subject_id=subject_id,
            at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._entries.append(failure)
        return failure

    def recent(self, source: FailureSource | str | None = None, limit: int = 50) -> list[Failure]:
        """Newest first."""
        wanted = FailureSource(source) if source else None
        with self._lock:
            entries = list(reversed(self._entries))
        if wanted is not None:
            entries = [f for f in entries if f.source is wanted]
        return entries[:limit]

    def counts_by_source(self) -> dict[str, int]:
        with self._lock:
            counts = Counter(f.source.value for f in self._entries)
        return dict(counts)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

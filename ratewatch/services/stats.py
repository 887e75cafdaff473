"""Read-only view over the call tracker for the stats endpoint."""

from __future__ import annotations

from ratewatch.models.stats import BlockEventOut, DailyCalls, StatsOut, WeeklyCalls
from ratewatch.services.tracker import CallTracker


class StatsQuery:
    def __init__(self, tracker: CallTracker):
        self._tracker = tracker

    def get_stats(self) -> StatsOut:
        snap = self._tracker.snapshot()
        return StatsOut(
            dailyCalls=DailyCalls(date=str(snap.daily.key), count=snap.daily.count),
            weeklyCalls=WeeklyCalls(week=int(snap.weekly.key), count=snap.weekly.count),
            blocks=[
                BlockEventOut(
                    endpoint=b.endpoint,
                    timestamp=b.timestamp,
                    status=b.status,
                    reason=b.reason.value,
                )
                for b in snap.blocks
            ],
        )

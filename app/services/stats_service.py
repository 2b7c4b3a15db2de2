"""
Deletion Request Statistics

Review-queue figures for the admin dashboard.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Any, Optional

from sqlmodel import Session, select

from app.core.config import settings
from app.models.deletion_request import DeletionRequest, DeletionRequestStatus

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 60 * 60
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR


class DeletionRequestStatsService:
    """Read-only aggregation over the deletion request history."""

    def __init__(self, db: Session, window_days: Optional[int] = None):
        self.db = db
        self.window_days = window_days or settings.stats_window_days

    def get_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Compute the review-queue statistics.

        All figures come from a single SELECT, so a request that is being
        approved concurrently is counted either as pending or as approved,
        never as both.

        Args:
            now: Reference time, defaults to the current UTC time

        Returns:
            Dictionary with pending_count, approved_last_30_days,
            rejected_last_30_days, average_review_time_hours and
            oldest_pending_days
        """
        now = now or datetime.utcnow()
        window_start = now - timedelta(days=self.window_days)

        rows = self.db.exec(
            select(
                DeletionRequest.status,
                DeletionRequest.created_at,
                DeletionRequest.reviewed_at
            ).where(DeletionRequest.status != DeletionRequestStatus.CANCELLED.value)
        ).all()

        pending_count = 0
        approved_recent = 0
        rejected_recent = 0
        oldest_pending: Optional[datetime] = None
        review_seconds = []

        for status, created_at, reviewed_at in rows:
            if status == DeletionRequestStatus.PENDING.value:
                pending_count += 1
                if oldest_pending is None or created_at < oldest_pending:
                    oldest_pending = created_at
                continue

            if reviewed_at is None:
                continue
            review_seconds.append((reviewed_at - created_at).total_seconds())
            if reviewed_at >= window_start:
                if status == DeletionRequestStatus.APPROVED.value:
                    approved_recent += 1
                elif status == DeletionRequestStatus.REJECTED.value:
                    rejected_recent += 1

        average_review_time_hours = 0
        if review_seconds:
            average_review_time_hours = round(
                sum(review_seconds) / len(review_seconds) / SECONDS_PER_HOUR, 2
            )

        oldest_pending_days = 0
        if oldest_pending is not None:
            oldest_pending_days = round((now - oldest_pending).total_seconds() / SECONDS_PER_DAY, 2)

        return {
            "pending_count": pending_count,
            "approved_last_30_days": approved_recent,
            "rejected_last_30_days": rejected_recent,
            "average_review_time_hours": average_review_time_hours,
            "oldest_pending_days": oldest_pending_days,
        }

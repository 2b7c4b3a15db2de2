"""
Deletion Request Model

A user's request to have an asset removed, reviewed by an admin.
"""

from typing import Optional
from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, Index, text
from sqlmodel import SQLModel, Field


class DeletionRequestStatus(str, Enum):
    """Lifecycle states. Everything except PENDING is terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({
    DeletionRequestStatus.APPROVED,
    DeletionRequestStatus.REJECTED,
    DeletionRequestStatus.CANCELLED,
})

MIN_JUSTIFICATION_LENGTH = 10

PENDING_FILTER = text("status = 'pending'")


class DeletionRequest(SQLModel, table=True):
    """Deletion request table model."""
    __tablename__ = "deletion_requests"
    __table_args__ = (
        # At most one pending request per asset, enforced by the database
        Index(
            "uq_deletion_requests_one_pending",
            "asset_id",
            unique=True,
            postgresql_where=PENDING_FILTER,
            sqlite_where=PENDING_FILTER,
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled')",
            name="ck_deletion_requests_status",
        ),
        CheckConstraint(
            f"length(justification) >= {MIN_JUSTIFICATION_LENGTH}",
            name="ck_deletion_requests_justification_length",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    # Cleared by the database when the asset row goes away
    asset_id: Optional[int] = Field(
        default=None, foreign_key="assets.id", ondelete="SET NULL", index=True
    )

    # Snapshot taken at submission, never rewritten
    asset_name: str = Field(max_length=255)
    asset_cost: float

    requested_by: int = Field(foreign_key="users.id", index=True)
    requester_email: str = Field(max_length=255)
    justification: str

    status: str = Field(default=DeletionRequestStatus.PENDING.value, max_length=20, index=True)

    reviewed_by: Optional[int] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    reviewer_email: Optional[str] = Field(default=None, max_length=255)
    review_comment: Optional[str] = Field(default=None)
    reviewed_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_pending(self) -> bool:
        return self.status == DeletionRequestStatus.PENDING.value

"""
Deletion request Pydantic schemas for API request/response serialization.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from app.models.deletion_request import DeletionRequestStatus


class DeletionRequestCreateSchema(BaseModel):
    """Schema for submitting a deletion request."""
    asset_id: int
    justification: str


class ApproveDeletionRequestSchema(BaseModel):
    """Schema for approving a deletion request. The comment is optional."""
    comment: Optional[str] = None


class RejectDeletionRequestSchema(BaseModel):
    """Schema for rejecting a deletion request."""
    comment: str


class DeletionRequestRead(BaseModel):
    """Schema for deletion request responses."""
    id: int
    asset_id: Optional[int] = None
    asset_name: str
    asset_cost: float
    requested_by: int
    requester_email: str
    justification: str
    status: DeletionRequestStatus
    reviewed_by: Optional[int] = None
    reviewer_email: Optional[str] = None
    review_comment: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PaginatedDeletionRequests(BaseModel):
    """Schema for a page of the review queue."""
    items: List[DeletionRequestRead]
    total: int
    page: int
    page_size: int
    total_pages: int


class DeletionRequestStats(BaseModel):
    """Schema for review-queue statistics."""
    pending_count: int = Field(ge=0)
    approved_last_30_days: int = Field(ge=0)
    rejected_last_30_days: int = Field(ge=0)
    average_review_time_hours: float
    oldest_pending_days: float

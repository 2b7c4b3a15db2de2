"""
Audit Log Model

Append-only ledger of deletion workflow events.
"""

from typing import Optional, Dict, Any
from sqlmodel import SQLModel, Field, JSON, Column
from datetime import datetime
from enum import Enum


class AuditAction(str, Enum):
    """Enum for different types of audit actions."""
    ASSET_DELETED = "asset_deleted"
    DELETION_REQUEST_SUBMITTED = "deletion_request_submitted"
    DELETION_REQUEST_CANCELLED = "deletion_request_cancelled"
    DELETION_REQUEST_APPROVED = "deletion_request_approved"
    DELETION_REQUEST_REJECTED = "deletion_request_rejected"


class AuditEntityType(str, Enum):
    """Kinds of entity an audit entry can describe."""
    ASSET = "asset"
    DELETION_REQUEST = "deletion_request"


class AuditLogBase(SQLModel):
    """Base audit log model with shared fields."""
    action: AuditAction
    entity_type: AuditEntityType = Field(description="Type of entity affected")
    entity_id: int = Field(index=True, description="ID of the affected entity")
    entity_data: Dict[str, Any] = Field(default={}, sa_column=Column(JSON), description="Snapshot of the entity and event details")
    performed_by: int = Field(description="User who performed the action")


class AuditLog(AuditLogBase, table=True):
    """Audit log table model."""
    __tablename__ = "audit_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, description="When the action occurred")


class AuditLogCreate(AuditLogBase):
    """Schema for creating audit log entries."""
    pass


class AuditLogResponse(AuditLogBase):
    """Schema for audit log responses."""
    id: int
    created_at: datetime

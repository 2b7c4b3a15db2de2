"""
Audit log Pydantic schemas for API responses.
"""

from pydantic import BaseModel
from typing import List

from app.models.audit_log import AuditLogResponse


class PaginatedAuditLogs(BaseModel):
    """Schema for one page of the audit log listing."""
    logs: List[AuditLogResponse]
    total: int
    skip: int
    limit: int

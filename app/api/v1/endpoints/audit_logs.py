"""
Audit history endpoints.
"""

from datetime import date
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, Response

from app.api.v1.endpoints.deletion_requests import get_deletion_workflow, respond
from app.models.audit_log import AuditAction, AuditEntityType, AuditLogResponse
from app.schemas.audit_log import PaginatedAuditLogs
from app.schemas.result import ActionResult
from app.services.deletion_workflow import DeletionWorkflow

router = APIRouter()


@router.get("/", response_model=ActionResult[PaginatedAuditLogs])
async def read_audit_logs(
    response: Response,
    action: Optional[AuditAction] = Query(None, description="Filter by action"),
    entity_type: Optional[AuditEntityType] = Query(None, description="Filter by entity type"),
    performed_by: Optional[int] = Query(None, description="Filter by acting user"),
    start_date: Optional[date] = Query(None, description="First day to include"),
    end_date: Optional[date] = Query(None, description="Last day to include"),
    skip: int = Query(0, description="Number of entries to skip"),
    limit: int = Query(50, description="Maximum number of entries to return"),
    workflow: DeletionWorkflow = Depends(get_deletion_workflow)
) -> Any:
    """
    Retrieve audit logs, newest first, with the total matching the filters.

    Only admin users can access this endpoint.
    """
    result = workflow.get_audit_logs(
        action=action,
        entity_type=entity_type,
        performed_by=performed_by,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )
    return respond(result, response)


@router.get("/{entity_type}/{entity_id}", response_model=ActionResult[List[AuditLogResponse]])
async def read_entity_audit_logs(
    entity_type: AuditEntityType,
    entity_id: int,
    response: Response,
    workflow: DeletionWorkflow = Depends(get_deletion_workflow)
) -> Any:
    """
    Audit history of one asset or deletion request, newest first.

    Admins can read any history; other users only that of their own assets
    and requests.
    """
    return respond(workflow.get_entity_audit_logs(entity_type, entity_id), response)

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlmodel import Session

from app.api.v1.endpoints.users import get_current_user
from app.core.config import settings
from app.core.rate_limit import limiter
from app.db.session import get_session
from app.middleware.error_middleware import error_response
from app.models.deletion_request import DeletionRequestStatus
from app.models.user import User
from app.schemas.deletion_request import (
    ApproveDeletionRequestSchema,
    DeletionRequestCreateSchema,
    DeletionRequestRead,
    DeletionRequestStats,
    PaginatedDeletionRequests,
    RejectDeletionRequestSchema,
)
from app.schemas.result import ActionResult
from app.services.deletion_workflow import DeletionWorkflow

router = APIRouter()


def get_deletion_workflow(
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
) -> DeletionWorkflow:
    return DeletionWorkflow(db, current_user.id)


def respond(result: ActionResult, response: Response, success_status: int = 200) -> Any:
    """Return the envelope, with the HTTP status matching its outcome."""
    if not result.success:
        return error_response(result)
    response.status_code = success_status
    return result


@router.post("/", response_model=ActionResult[DeletionRequestRead], status_code=201)
@limiter.limit(settings.submit_rate_limit)
async def submit_deletion_request(
    request: Request,
    response: Response,
    payload: DeletionRequestCreateSchema,
    workflow: DeletionWorkflow = Depends(get_deletion_workflow)
) -> Any:
    """
    Ask for an asset to be deleted. Only the asset's creator may do this,
    and only while no other request for it is pending.
    """
    result = workflow.submit_deletion_request(payload.asset_id, payload.justification)
    return respond(result, response, success_status=201)


@router.get("/", response_model=ActionResult[PaginatedDeletionRequests])
async def read_deletion_requests(
    response: Response,
    status: Optional[DeletionRequestStatus] = Query(None, description="Filter by status"),
    page: int = Query(1, description="Page number, starting at 1"),
    page_size: int = Query(10, description="Requests per page"),
    workflow: DeletionWorkflow = Depends(get_deletion_workflow)
) -> Any:
    """
    Retrieve the review queue, newest first.

    Only admin users can list all requests.
    """
    result = workflow.get_all_deletion_requests(status=status, page=page, page_size=page_size)
    return respond(result, response)


@router.get("/mine", response_model=ActionResult[List[DeletionRequestRead]])
async def read_my_deletion_requests(
    response: Response,
    workflow: DeletionWorkflow = Depends(get_deletion_workflow)
) -> Any:
    """Requests submitted by the current user."""
    return respond(workflow.get_my_deletion_requests(), response)


@router.get("/stats", response_model=ActionResult[DeletionRequestStats])
async def read_deletion_request_stats(
    response: Response,
    workflow: DeletionWorkflow = Depends(get_deletion_workflow)
) -> Any:
    """Review-queue statistics for the admin dashboard."""
    return respond(workflow.get_deletion_request_stats(), response)


@router.get("/pending-count", response_model=ActionResult[int])
async def read_pending_count(
    response: Response,
    workflow: DeletionWorkflow = Depends(get_deletion_workflow)
) -> Any:
    """Number of requests awaiting review."""
    return respond(workflow.get_pending_deletion_requests_count(), response)


@router.get("/asset/{asset_id}", response_model=ActionResult[Optional[DeletionRequestRead]])
async def read_deletion_request_for_asset(
    asset_id: int,
    response: Response,
    workflow: DeletionWorkflow = Depends(get_deletion_workflow)
) -> Any:
    """Most recent request for an asset, or null if it never had one."""
    return respond(workflow.get_deletion_request_for_asset(asset_id), response)


@router.post("/{request_id}/cancel", response_model=ActionResult[None])
async def cancel_deletion_request(
    request_id: int,
    response: Response,
    workflow: DeletionWorkflow = Depends(get_deletion_workflow)
) -> Any:
    """Withdraw one of your own pending requests."""
    return respond(workflow.cancel_deletion_request(request_id), response)


@router.post("/{request_id}/approve", response_model=ActionResult[None])
async def approve_deletion_request(
    request_id: int,
    response: Response,
    payload: Optional[ApproveDeletionRequestSchema] = None,
    workflow: DeletionWorkflow = Depends(get_deletion_workflow)
) -> Any:
    """
    Approve a pending request. The asset is deleted in the same transaction.
    """
    comment = payload.comment if payload else None
    return respond(workflow.approve_deletion_request(request_id, comment), response)


@router.post("/{request_id}/reject", response_model=ActionResult[None])
async def reject_deletion_request(
    request_id: int,
    response: Response,
    payload: RejectDeletionRequestSchema,
    workflow: DeletionWorkflow = Depends(get_deletion_workflow)
) -> Any:
    """Reject a pending request. A reason is required; the asset is kept."""
    return respond(workflow.reject_deletion_request(request_id, payload.comment), response)

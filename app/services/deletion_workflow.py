"""
Deletion Workflow

The operation surface of the deletion workflow, acting on behalf of one
authenticated user. Every operation returns an ``ActionResult``: domain
errors keep their code, storage errors become DATABASE_ERROR and anything
unexpected is logged and reported as UNKNOWN_ERROR.
"""

import logging
from datetime import date
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.exceptions import (
    ErrorCode,
    NotFoundError,
    UnauthorizedError,
    WorkflowError,
    WorkflowValidationError,
)
from app.models.audit_log import AuditAction, AuditEntityType, AuditLogResponse
from app.models.deletion_request import DeletionRequestStatus
from app.schemas.audit_log import PaginatedAuditLogs
from app.schemas.deletion_request import (
    DeletionRequestRead,
    DeletionRequestStats,
    PaginatedDeletionRequests,
)
from app.schemas.result import ActionResult
from app.services.approval_service import ApprovalService
from app.services.asset_store import AssetStore
from app.services.audit_service import AuditService, AuditServiceError
from app.services.authorization import AuthorizationGate
from app.services.deletion_request_service import DeletionRequestService
from app.services.stats_service import DeletionRequestStatsService

logger = logging.getLogger(__name__)

MAX_AUDIT_PAGE_SIZE = 100


class DeletionWorkflow:
    """Deletion workflow operations for the current user."""

    def __init__(
        self,
        db: Session,
        user_id: int,
        gate: Optional[AuthorizationGate] = None,
        audit: Optional[AuditService] = None,
        assets: Optional[AssetStore] = None
    ):
        self.db = db
        self.user_id = user_id
        self.gate = gate or AuthorizationGate(db)
        self.audit = audit or AuditService(db)
        self.assets = assets or AssetStore(db)
        self.requests = DeletionRequestService(db, self.gate, self.audit, self.assets)
        self.approvals = ApprovalService(db, self.gate, self.audit, self.assets)
        self.stats = DeletionRequestStatsService(db)

    def _run(self, operation: str, func: Callable[[], Any]) -> ActionResult:
        try:
            return ActionResult.ok(func())
        except WorkflowError as e:
            return ActionResult.from_error(e)
        except (SQLAlchemyError, AuditServiceError) as e:
            self.db.rollback()
            logger.error(f"{operation} failed on the database: {e}")
            return ActionResult.fail(ErrorCode.DATABASE_ERROR, f"Failed to {operation}")
        except Exception:
            self.db.rollback()
            logger.exception(f"Unexpected error during {operation}")
            return ActionResult.fail(ErrorCode.UNKNOWN_ERROR, "An unexpected error occurred")

    def submit_deletion_request(self, asset_id: int, justification: str) -> ActionResult:
        return self._run(
            "submit deletion request",
            lambda: DeletionRequestRead.model_validate(
                self.requests.submit(asset_id, justification, self.user_id)
            )
        )

    def cancel_deletion_request(self, request_id: int) -> ActionResult:
        def _cancel():
            self.requests.cancel(request_id, self.user_id)
        return self._run("cancel deletion request", _cancel)

    def approve_deletion_request(self, request_id: int, comment: Optional[str] = None) -> ActionResult:
        def _approve():
            self.approvals.approve(request_id, self.user_id, comment)
        return self._run("approve deletion request", _approve)

    def reject_deletion_request(self, request_id: int, comment: str) -> ActionResult:
        def _reject():
            self.requests.reject(request_id, self.user_id, comment)
        return self._run("reject deletion request", _reject)

    def delete_asset_direct(self, asset_id: int) -> ActionResult:
        def _delete():
            self.approvals.delete_asset_direct(asset_id, self.user_id)
        return self._run("delete asset", _delete)

    def get_deletion_request_for_asset(self, asset_id: int) -> ActionResult:
        def _get():
            deletion_request = self.requests.get_for_asset(asset_id, self.user_id)
            if deletion_request is None:
                return None
            return DeletionRequestRead.model_validate(deletion_request)
        return self._run("fetch deletion request", _get)

    def get_all_deletion_requests(
        self,
        status: Optional[DeletionRequestStatus] = None,
        page: int = 1,
        page_size: int = 10
    ) -> ActionResult:
        def _list():
            result = self.requests.list_requests(self.user_id, status=status, page=page, page_size=page_size)
            return PaginatedDeletionRequests(
                items=[DeletionRequestRead.model_validate(r) for r in result["items"]],
                total=result["total"],
                page=result["page"],
                page_size=result["page_size"],
                total_pages=result["total_pages"],
            )
        return self._run("fetch deletion requests", _list)

    def get_my_deletion_requests(self) -> ActionResult:
        return self._run(
            "fetch deletion requests",
            lambda: [DeletionRequestRead.model_validate(r) for r in self.requests.list_mine(self.user_id)]
        )

    def get_pending_deletion_requests_count(self) -> ActionResult:
        return self._run("fetch pending count", lambda: self.requests.pending_count(self.user_id))

    def get_deletion_request_stats(self) -> ActionResult:
        def _stats():
            if not self.gate.is_admin(self.user_id):
                raise UnauthorizedError("Only administrators can view deletion request statistics")
            return DeletionRequestStats(**self.stats.get_stats())
        return self._run("fetch statistics", _stats)

    def _require_history_access(self, entity_type: AuditEntityType, entity_id: int) -> None:
        """Admins see every history; users see their own assets and requests."""
        if self.gate.is_admin(self.user_id):
            return
        if entity_type == AuditEntityType.ASSET:
            asset = self.assets.get(entity_id)
            if asset is None:
                raise NotFoundError("Asset not found")
            owner_id = asset.created_by
        else:
            deletion_request = self.requests.get(entity_id)
            if deletion_request is None:
                raise NotFoundError("Deletion request not found")
            owner_id = deletion_request.requested_by
        if owner_id != self.user_id:
            raise UnauthorizedError("You do not have permission to view this audit log")

    def get_entity_audit_logs(self, entity_type: AuditEntityType, entity_id: int) -> ActionResult:
        def _history():
            self._require_history_access(entity_type, entity_id)
            return [
                AuditLogResponse.model_validate(log)
                for log in self.audit.get_entity_history(entity_type, entity_id)
            ]
        return self._run("fetch audit logs", _history)

    def get_audit_logs(
        self,
        action: Optional[AuditAction] = None,
        entity_type: Optional[AuditEntityType] = None,
        performed_by: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 50
    ) -> ActionResult:
        def _list():
            if not self.gate.is_admin(self.user_id):
                raise UnauthorizedError("Only administrators can view audit logs")
            if skip < 0:
                raise WorkflowValidationError("Offset cannot be negative", field="skip")
            if limit < 1 or limit > MAX_AUDIT_PAGE_SIZE:
                raise WorkflowValidationError(
                    f"Limit must be between 1 and {MAX_AUDIT_PAGE_SIZE}", field="limit"
                )
            if start_date and end_date and start_date > end_date:
                raise WorkflowValidationError("Start date must not be after end date", field="start_date")

            logs, total = self.audit.get_audit_logs(
                action=action,
                entity_type=entity_type,
                performed_by=performed_by,
                start_date=start_date,
                end_date=end_date,
                skip=skip,
                limit=limit,
            )
            return PaginatedAuditLogs(
                logs=[AuditLogResponse.model_validate(log) for log in logs],
                total=total,
                skip=skip,
                limit=limit,
            )
        return self._run("fetch audit logs", _list)

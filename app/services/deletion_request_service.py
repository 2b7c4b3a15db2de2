"""
Deletion Request Service

Submission, cancellation and rejection of asset deletion requests, plus the
read queries used by the review screens. Approval lives in
``approval_service`` because it also removes the asset.
"""

import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select, func, desc

from app.core.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    UnauthorizedError,
    WorkflowError,
    WorkflowValidationError,
)
from app.models.audit_log import AuditAction, AuditEntityType
from app.models.deletion_request import (
    DeletionRequest,
    DeletionRequestStatus,
    MIN_JUSTIFICATION_LENGTH,
)
from app.services.asset_store import AssetStore
from app.services.audit_service import AuditService
from app.services.authorization import AuthorizationGate

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def transition_from_pending(
    db: Session,
    request_id: int,
    new_status: DeletionRequestStatus,
    **values: Any
) -> bool:
    """
    Move a request out of ``pending`` with a conditional UPDATE.

    Only a row that is still pending is touched, so of several concurrent
    transitions exactly one sees a row affected. Does not commit.

    Returns:
        True if this call performed the transition
    """
    statement = (
        update(DeletionRequest)
        .where(
            DeletionRequest.id == request_id,
            DeletionRequest.status == DeletionRequestStatus.PENDING.value,
        )
        .values(status=new_status.value, updated_at=datetime.utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    return db.exec(statement).rowcount == 1


class DeletionRequestService:
    """Service for the request side of the deletion workflow."""

    def __init__(
        self,
        db: Session,
        gate: Optional[AuthorizationGate] = None,
        audit: Optional[AuditService] = None,
        assets: Optional[AssetStore] = None
    ):
        self.db = db
        self.gate = gate or AuthorizationGate(db)
        self.audit = audit or AuditService(db)
        self.assets = assets or AssetStore(db)

    def get(self, request_id: int) -> Optional[DeletionRequest]:
        """Get a deletion request by its ID."""
        return self.db.get(DeletionRequest, request_id)

    @staticmethod
    def _pending_for_asset_query(asset_id: int):
        return select(DeletionRequest).where(
            DeletionRequest.asset_id == asset_id,
            DeletionRequest.status == DeletionRequestStatus.PENDING.value
        )

    def find_pending_for_asset(self, asset_id: int) -> Optional[DeletionRequest]:
        """The pending request for an asset, if any."""
        return self.db.exec(self._pending_for_asset_query(asset_id)).first()

    def submit(self, asset_id: int, justification: str, requester_id: int) -> DeletionRequest:
        """
        Create a pending deletion request for an asset the requester owns.

        The pending-request lookup only exists to fail early with a clear
        message; the partial unique index is what rejects a concurrent
        duplicate, and that rejection is reported the same way.
        """
        justification = (justification or "").strip()
        if len(justification) < MIN_JUSTIFICATION_LENGTH:
            raise WorkflowValidationError(
                f"Justification must be at least {MIN_JUSTIFICATION_LENGTH} characters",
                field="justification"
            )

        requester = self.gate.get_user(requester_id)
        if requester is None:
            raise UnauthorizedError("Authentication required")

        asset = self.assets.get(asset_id)
        if asset is None:
            raise NotFoundError("Asset not found")

        if not self.gate.is_owner(asset_id, requester_id):
            raise UnauthorizedError("You can only request deletion of assets you created")

        if self.find_pending_for_asset(asset_id) is not None:
            raise ConflictError(
                "This asset already has a pending deletion request",
                details={"asset_id": asset_id}
            )

        deletion_request = DeletionRequest(
            asset_id=asset.id,
            asset_name=asset.name,
            asset_cost=asset.cost,
            requested_by=requester.id,
            requester_email=requester.email,
            justification=justification,
        )
        try:
            self.db.add(deletion_request)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise self._classify_insert_violation(asset_id, e)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create deletion request for asset {asset_id}: {e}")
            raise DatabaseError("Failed to create deletion request")

        self.db.refresh(deletion_request)
        logger.info(f"Deletion request {deletion_request.id} submitted for asset {asset_id} by user {requester_id}")

        self.audit.record(
            AuditAction.DELETION_REQUEST_SUBMITTED,
            AuditEntityType.DELETION_REQUEST,
            deletion_request.id,
            performed_by=requester_id,
            entity_data={
                "asset_id": asset_id,
                "asset_name": deletion_request.asset_name,
                "asset_cost": deletion_request.asset_cost,
                "justification": justification,
            }
        )
        return deletion_request

    def _classify_insert_violation(self, asset_id: int, error: IntegrityError) -> WorkflowError:
        """
        Work out which constraint rejected a new request.

        Runs after the rollback, so it sees whatever the competing
        transaction committed: a pending request means the unique index
        fired, a missing asset means the foreign key did.
        """
        if self.db.exec(self._pending_for_asset_query(asset_id)).first() is not None:
            logger.info(f"Duplicate pending deletion request for asset {asset_id} rejected by the database: {error.orig}")
            return ConflictError(
                "This asset already has a pending deletion request",
                details={"asset_id": asset_id}
            )
        if not self.assets.exists(asset_id):
            logger.info(f"Asset {asset_id} was deleted before its deletion request was stored: {error.orig}")
            return NotFoundError("Asset not found")

        logger.error(f"Failed to create deletion request for asset {asset_id}: {error.orig}")
        return DatabaseError("Failed to create deletion request")

    def cancel(self, request_id: int, caller_id: int) -> DeletionRequest:
        """Withdraw a pending request. Only the original requester may do this."""
        deletion_request = self.get(request_id)
        if deletion_request is None:
            raise NotFoundError("Deletion request not found")

        if deletion_request.requested_by != caller_id:
            raise UnauthorizedError("You can only cancel your own deletion requests")

        if not deletion_request.is_pending:
            raise WorkflowValidationError("Only pending requests can be cancelled")

        self._commit_transition(request_id, DeletionRequestStatus.CANCELLED, "cancel")
        self.db.refresh(deletion_request)
        logger.info(f"Deletion request {request_id} cancelled by user {caller_id}")

        self.audit.record(
            AuditAction.DELETION_REQUEST_CANCELLED,
            AuditEntityType.DELETION_REQUEST,
            request_id,
            performed_by=caller_id,
            entity_data={
                "asset_id": deletion_request.asset_id,
                "asset_name": deletion_request.asset_name,
            }
        )
        return deletion_request

    def reject(self, request_id: int, reviewer_id: int, comment: str) -> DeletionRequest:
        """Close a pending request without touching its asset. Admins only."""
        if not self.gate.is_admin(reviewer_id):
            raise UnauthorizedError("Only administrators can reject deletion requests")

        comment = (comment or "").strip()
        if not comment:
            raise WorkflowValidationError(
                "A reason must be provided when rejecting a request",
                field="review_comment"
            )

        deletion_request = self.get(request_id)
        if deletion_request is None:
            raise NotFoundError("Deletion request not found")

        if not deletion_request.is_pending:
            raise WorkflowValidationError("Only pending requests can be rejected")

        reviewer = self.gate.get_user(reviewer_id)
        self._commit_transition(
            request_id,
            DeletionRequestStatus.REJECTED,
            "reject",
            reviewed_by=reviewer_id,
            reviewer_email=reviewer.email,
            review_comment=comment,
            reviewed_at=datetime.utcnow(),
        )
        self.db.refresh(deletion_request)
        logger.info(f"Deletion request {request_id} rejected by admin {reviewer_id}")

        self.audit.record(
            AuditAction.DELETION_REQUEST_REJECTED,
            AuditEntityType.DELETION_REQUEST,
            request_id,
            performed_by=reviewer_id,
            entity_data={
                "asset_id": deletion_request.asset_id,
                "asset_name": deletion_request.asset_name,
                "asset_cost": deletion_request.asset_cost,
                "review_comment": comment,
            }
        )
        return deletion_request

    def _commit_transition(
        self,
        request_id: int,
        new_status: DeletionRequestStatus,
        verb: str,
        **values: Any
    ) -> None:
        try:
            transitioned = transition_from_pending(self.db, request_id, new_status, **values)
            if not transitioned:
                self.db.rollback()
                raise WorkflowValidationError(f"Only pending requests can be {new_status.value}")
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {verb} deletion request {request_id}: {e}")
            raise DatabaseError(f"Failed to {verb} deletion request")

    def get_for_asset(self, asset_id: int, caller_id: int) -> Optional[DeletionRequest]:
        """
        Most recent request for an asset, visible to its owner and to admins.

        An unknown asset has no requests, so None is returned rather than an
        authorization error.
        """
        if not self.gate.is_admin(caller_id):
            asset = self.assets.get(asset_id)
            if asset is None:
                return None
            if asset.created_by != caller_id:
                raise UnauthorizedError("You can only view deletion requests for your own assets")

        statement = (
            select(DeletionRequest)
            .where(DeletionRequest.asset_id == asset_id)
            .order_by(desc(DeletionRequest.created_at), desc(DeletionRequest.id))
            .limit(1)
        )
        return self.db.exec(statement).first()

    def list_mine(self, caller_id: int) -> List[DeletionRequest]:
        """The caller's own requests, newest first."""
        statement = (
            select(DeletionRequest)
            .where(DeletionRequest.requested_by == caller_id)
            .order_by(desc(DeletionRequest.created_at), desc(DeletionRequest.id))
        )
        return list(self.db.exec(statement).all())

    def list_requests(
        self,
        caller_id: int,
        status: Optional[DeletionRequestStatus] = None,
        page: int = 1,
        page_size: int = 10
    ) -> Dict[str, Any]:
        """Paginated requests for the admin review queue, newest first."""
        if not self.gate.is_admin(caller_id):
            raise UnauthorizedError("Only administrators can view all deletion requests")
        if page < 1:
            raise WorkflowValidationError("Page must be at least 1", field="page")
        if page_size < 1 or page_size > MAX_PAGE_SIZE:
            raise WorkflowValidationError(
                f"Page size must be between 1 and {MAX_PAGE_SIZE}", field="page_size"
            )

        items, total = self._page(status, (page - 1) * page_size, page_size)
        return {
            "items": items,
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": math.ceil(total / page_size),
        }

    def _page(
        self,
        status: Optional[DeletionRequestStatus],
        skip: int,
        limit: int
    ) -> Tuple[List[DeletionRequest], int]:
        statement = select(DeletionRequest)
        count_statement = select(func.count(DeletionRequest.id))
        if status:
            statement = statement.where(DeletionRequest.status == status.value)
            count_statement = count_statement.where(DeletionRequest.status == status.value)

        statement = statement.order_by(
            desc(DeletionRequest.created_at), desc(DeletionRequest.id)
        ).offset(skip).limit(limit)

        results = list(self.db.exec(statement).all())
        total = self.db.exec(count_statement).one()
        return results, total

    def pending_count(self, caller_id: int) -> int:
        """Number of requests awaiting review. Admins only."""
        if not self.gate.is_admin(caller_id):
            raise UnauthorizedError("Only administrators can view deletion request counts")
        statement = select(func.count(DeletionRequest.id)).where(
            DeletionRequest.status == DeletionRequestStatus.PENDING.value
        )
        return self.db.exec(statement).one()

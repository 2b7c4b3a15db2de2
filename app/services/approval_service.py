"""
Approval Service

Approving a deletion request removes the asset, closes the request and
records both events in one database transaction. Direct admin deletion goes
through the same path so a pending request can never outlive its asset.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.core.exceptions import (
    DatabaseError,
    NotFoundError,
    UnauthorizedError,
    WorkflowError,
    WorkflowValidationError,
)
from app.models.audit_log import AuditAction, AuditEntityType, AuditLogCreate
from app.models.deletion_request import DeletionRequest, DeletionRequestStatus
from app.models.user import User
from app.services.asset_store import AssetStore
from app.services.audit_service import AuditService
from app.services.authorization import AuthorizationGate
from app.services.deletion_request_service import transition_from_pending

logger = logging.getLogger(__name__)

DIRECT_DELETION_COMMENT = "Auto-approved via direct admin deletion"


class ApprovalService:
    """Service executing approvals and direct deletions atomically."""

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

    def _require_admin(self, user_id: int, message: str) -> User:
        if not self.gate.is_admin(user_id):
            raise UnauthorizedError(message)
        return self.gate.get_user(user_id)

    def _lock_request(self, request_id: int) -> Optional[DeletionRequest]:
        statement = (
            select(DeletionRequest)
            .where(DeletionRequest.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.exec(statement).first()

    def _lock_pending_for_asset(self, asset_id: int) -> Optional[DeletionRequest]:
        statement = (
            select(DeletionRequest)
            .where(
                DeletionRequest.asset_id == asset_id,
                DeletionRequest.status == DeletionRequestStatus.PENDING.value
            )
            .with_for_update()
        )
        return self.db.exec(statement).first()

    def approve(self, request_id: int, reviewer_id: int, comment: Optional[str] = None) -> DeletionRequest:
        """
        Approve a pending request and delete its asset.

        Steps, all in one transaction:
            1. lock the asset row and claim the request (pending ->
               approved, reviewer stamped, asset reference cleared)
            2. delete the asset
            3. append ``asset_deleted`` and ``deletion_request_approved``

        Nothing is kept if any step fails. A concurrent approval that lost
        the claim gets a validation error and writes nothing.
        """
        reviewer = self._require_admin(reviewer_id, "Only administrators can approve deletion requests")
        comment = (comment or "").strip() or None

        try:
            deletion_request = self._lock_request(request_id)
            if deletion_request is None:
                raise NotFoundError("Deletion request not found")
            if not deletion_request.is_pending:
                raise WorkflowValidationError("Only pending requests can be approved")

            asset_id = deletion_request.asset_id
            asset = self.assets.get_for_update(asset_id) if asset_id is not None else None
            if asset is None:
                raise NotFoundError("Asset not found")
            asset_snapshot = asset.snapshot()

            claimed = transition_from_pending(
                self.db,
                request_id,
                DeletionRequestStatus.APPROVED,
                asset_id=None,
                reviewed_by=reviewer.id,
                reviewer_email=reviewer.email,
                review_comment=comment,
                reviewed_at=datetime.utcnow(),
            )
            if not claimed:
                raise WorkflowValidationError("Only pending requests can be approved")

            if not self.assets.delete(asset_id):
                raise NotFoundError("Asset not found")

            self.audit.record_within([
                AuditService.entry(
                    AuditAction.ASSET_DELETED,
                    AuditEntityType.ASSET,
                    asset_id,
                    performed_by=reviewer.id,
                    entity_data={
                        **asset_snapshot,
                        "deleted_via_request": True,
                        "deletion_request_id": request_id,
                    }
                ),
                AuditService.entry(
                    AuditAction.DELETION_REQUEST_APPROVED,
                    AuditEntityType.DELETION_REQUEST,
                    request_id,
                    performed_by=reviewer.id,
                    entity_data={
                        "asset_id": asset_id,
                        "asset_name": deletion_request.asset_name,
                        "asset_cost": deletion_request.asset_cost,
                        "review_comment": comment,
                    }
                ),
            ])

            self.db.commit()
        except WorkflowError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Approval of deletion request {request_id} rolled back: {e}")
            raise DatabaseError("Failed to approve deletion request")

        logger.info(f"Deletion request {request_id} approved by admin {reviewer_id}; asset {asset_id} deleted")
        self.db.refresh(deletion_request)
        return deletion_request

    def delete_asset_direct(self, asset_id: int, admin_id: int) -> Optional[DeletionRequest]:
        """
        Delete an asset without review.

        A pending request on the asset is approved with a fixed comment in
        the same transaction as the deletion.

        Returns:
            The auto-approved request, or None if there was none
        """
        admin = self._require_admin(admin_id, "Only administrators can delete assets")

        try:
            # Locked before the pending lookup so no request can be submitted
            # between the lookup and the delete
            asset = self.assets.get_for_update(asset_id)
            if asset is None:
                raise NotFoundError("Asset not found")
            asset_snapshot = asset.snapshot()

            pending = self._lock_pending_for_asset(asset_id)
            if pending is not None:
                claimed = transition_from_pending(
                    self.db,
                    pending.id,
                    DeletionRequestStatus.APPROVED,
                    asset_id=None,
                    reviewed_by=admin.id,
                    reviewer_email=admin.email,
                    review_comment=DIRECT_DELETION_COMMENT,
                    reviewed_at=datetime.utcnow(),
                )
                if not claimed:
                    # Settled by someone else since the lookup; nothing left to approve
                    pending = None

            if not self.assets.delete(asset_id):
                raise NotFoundError("Asset not found")

            entries: List[AuditLogCreate] = [
                AuditService.entry(
                    AuditAction.ASSET_DELETED,
                    AuditEntityType.ASSET,
                    asset_id,
                    performed_by=admin.id,
                    entity_data={
                        **asset_snapshot,
                        "direct_deletion": True,
                        "had_pending_request": pending is not None,
                        "deletion_request_id": pending.id if pending is not None else None,
                    }
                )
            ]
            if pending is not None:
                entries.append(AuditService.entry(
                    AuditAction.DELETION_REQUEST_APPROVED,
                    AuditEntityType.DELETION_REQUEST,
                    pending.id,
                    performed_by=admin.id,
                    entity_data={
                        "asset_id": asset_id,
                        "asset_name": pending.asset_name,
                        "asset_cost": pending.asset_cost,
                        "review_comment": DIRECT_DELETION_COMMENT,
                        "direct_deletion": True,
                        "had_pending_request": True,
                    }
                ))
            self.audit.record_within(entries)

            self.db.commit()
        except WorkflowError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Direct deletion of asset {asset_id} rolled back: {e}")
            raise DatabaseError("Failed to delete asset")

        if pending is None:
            logger.info(f"Asset {asset_id} deleted directly by admin {admin_id}")
            return None

        logger.info(
            f"Asset {asset_id} deleted directly by admin {admin_id}; "
            f"pending deletion request {pending.id} auto-approved"
        )
        self.db.refresh(pending)
        return pending

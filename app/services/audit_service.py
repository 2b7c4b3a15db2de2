"""
Audit Logging Service

Append-only sink for deletion workflow events.

Audit writes never decide the outcome of the operation they describe. A
failed write is retried, then reported on the ``app.audit.gaps`` logger with
the full entry so the gap can be reconciled by hand.
"""

from datetime import date, datetime, time, timedelta
from typing import List, Dict, Any, Optional, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select, desc, func
import logging

from app.core.config import settings
from app.models.audit_log import AuditLog, AuditAction, AuditEntityType, AuditLogCreate

logger = logging.getLogger(__name__)
gap_logger = logging.getLogger("app.audit.gaps")


class AuditServiceError(Exception):
    """Base exception for audit service operations."""
    pass


class AuditService:
    """Service for appending and reading audit log entries."""

    def __init__(self, db: Session, max_attempts: Optional[int] = None):
        self.db = db
        self.max_attempts = max(1, max_attempts or settings.audit_write_attempts)

    @staticmethod
    def entry(
        action: AuditAction,
        entity_type: AuditEntityType,
        entity_id: int,
        performed_by: int,
        entity_data: Optional[Dict[str, Any]] = None
    ) -> AuditLogCreate:
        """Build an entry without writing it."""
        return AuditLogCreate(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_data=entity_data or {},
            performed_by=performed_by
        )

    def record(
        self,
        action: AuditAction,
        entity_type: AuditEntityType,
        entity_id: int,
        performed_by: int,
        entity_data: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Append one entry in its own transaction.

        Used after the state transition it describes has already committed.

        Returns:
            True if the entry was written, False if every attempt failed
        """
        log_entry = self.entry(action, entity_type, entity_id, performed_by, entity_data)

        for attempt in range(1, self.max_attempts + 1):
            try:
                self.db.add(AuditLog.model_validate(log_entry))
                self.db.commit()
                return True
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.warning(
                    f"Audit write for {action.value} on {entity_type.value} {entity_id} "
                    f"failed (attempt {attempt}/{self.max_attempts}): {e}"
                )

        self._report_gap([log_entry], reason="retries exhausted")
        return False

    def record_within(self, entries: List[AuditLogCreate]) -> bool:
        """
        Append entries inside the caller's open transaction.

        The entries are written under a SAVEPOINT: if they fail only the
        savepoint is rolled back and the caller's transaction carries on. If
        the caller later rolls back, the entries go with it.

        Returns:
            True if the entries were written, False if the savepoint failed
        """
        try:
            with self.db.begin_nested():
                for log_entry in entries:
                    self.db.add(AuditLog.model_validate(log_entry))
                self.db.flush()
            return True
        except SQLAlchemyError as e:
            self._report_gap(entries, reason=str(e))
            return False

    def _report_gap(self, entries: List[AuditLogCreate], reason: str) -> None:
        for log_entry in entries:
            gap_logger.error(
                "Audit entry not persisted (%s): %s",
                reason,
                log_entry.model_dump(mode="json"),
            )

    def get_entity_history(self, entity_type: AuditEntityType, entity_id: int) -> List[AuditLog]:
        """All entries for one entity, newest first."""
        try:
            query = (
                select(AuditLog)
                .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
                .order_by(desc(AuditLog.created_at), desc(AuditLog.id))
            )
            return list(self.db.exec(query).all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to retrieve audit history for {entity_type.value} {entity_id}: {e}")
            raise AuditServiceError(f"Failed to retrieve audit history: {e}")

    def get_audit_logs(
        self,
        action: Optional[AuditAction] = None,
        entity_type: Optional[AuditEntityType] = None,
        performed_by: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[AuditLog], int]:
        """
        Retrieve audit logs with filtering options, newest first.

        Args:
            action: Filter by action type
            entity_type: Filter by entity type
            performed_by: Filter by acting user
            start_date: Earliest day to include
            end_date: Last day to include, as a whole day
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            The requested page of entries and the number of entries matching
            the filters
        """
        conditions = []
        if action:
            conditions.append(AuditLog.action == action)
        if entity_type:
            conditions.append(AuditLog.entity_type == entity_type)
        if performed_by:
            conditions.append(AuditLog.performed_by == performed_by)
        if start_date:
            conditions.append(AuditLog.created_at >= datetime.combine(start_date, time.min))
        if end_date:
            conditions.append(AuditLog.created_at < datetime.combine(end_date + timedelta(days=1), time.min))

        try:
            query = (
                select(AuditLog)
                .where(*conditions)
                .order_by(desc(AuditLog.created_at), desc(AuditLog.id))
                .offset(skip)
                .limit(limit)
            )
            count_query = select(func.count(AuditLog.id)).where(*conditions)

            logs = list(self.db.exec(query).all())
            total = self.db.exec(count_query).one()
            return logs, total

        except SQLAlchemyError as e:
            logger.error(f"Failed to retrieve audit logs: {e}")
            raise AuditServiceError(f"Failed to retrieve audit logs: {e}")

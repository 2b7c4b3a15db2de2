import logging
from datetime import date, datetime

import pytest
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from app.models.audit_log import AuditAction, AuditEntityType, AuditLog
from app.services.audit_service import AuditService, AuditServiceError


@pytest.fixture
def mock_db():
    """Provides a mock database session."""
    return MagicMock(spec=Session)


def _db_failure():
    return OperationalError("INSERT INTO audit_logs", {}, Exception("database is locked"))


def test_record_writes_entry(mock_db):
    """A successful write commits once and returns True."""
    service = AuditService(mock_db, max_attempts=3)

    written = service.record(
        AuditAction.DELETION_REQUEST_SUBMITTED,
        AuditEntityType.DELETION_REQUEST,
        7,
        performed_by=2,
        entity_data={"asset_id": 3}
    )

    assert written is True
    mock_db.add.assert_called_once()
    added = mock_db.add.call_args[0][0]
    assert isinstance(added, AuditLog)
    assert added.entity_id == 7
    assert added.entity_data == {"asset_id": 3}
    mock_db.commit.assert_called_once()


def test_record_retries_then_succeeds(mock_db):
    mock_db.commit.side_effect = [_db_failure(), None]
    service = AuditService(mock_db, max_attempts=3)

    written = service.record(
        AuditAction.DELETION_REQUEST_CANCELLED, AuditEntityType.DELETION_REQUEST, 7, performed_by=2
    )

    assert written is True
    assert mock_db.commit.call_count == 2
    mock_db.rollback.assert_called_once()


def test_record_reports_gap_when_retries_exhausted(mock_db, caplog):
    """Exhausted retries return False and log the entry instead of raising."""
    mock_db.commit.side_effect = _db_failure()
    service = AuditService(mock_db, max_attempts=3)

    with caplog.at_level(logging.ERROR, logger="app.audit.gaps"):
        written = service.record(
            AuditAction.DELETION_REQUEST_REJECTED,
            AuditEntityType.DELETION_REQUEST,
            11,
            performed_by=4,
            entity_data={"review_comment": "Still in use"}
        )

    assert written is False
    assert mock_db.commit.call_count == 3
    assert mock_db.rollback.call_count == 3
    gaps = [r for r in caplog.records if r.name == "app.audit.gaps"]
    assert len(gaps) == 1
    assert "deletion_request_rejected" in gaps[0].getMessage()
    assert "Still in use" in gaps[0].getMessage()


def test_record_within_uses_savepoint(mock_db):
    """Entries join the caller's transaction and are not committed here."""
    service = AuditService(mock_db)
    entries = [
        service.entry(AuditAction.ASSET_DELETED, AuditEntityType.ASSET, 3, performed_by=1),
        service.entry(AuditAction.DELETION_REQUEST_APPROVED, AuditEntityType.DELETION_REQUEST, 7, performed_by=1),
    ]

    assert service.record_within(entries) is True

    mock_db.begin_nested.assert_called_once()
    assert mock_db.add.call_count == 2
    mock_db.flush.assert_called_once()
    mock_db.commit.assert_not_called()


def test_record_within_failure_is_reported(mock_db, caplog):
    mock_db.flush.side_effect = _db_failure()
    service = AuditService(mock_db)
    entries = [service.entry(AuditAction.ASSET_DELETED, AuditEntityType.ASSET, 3, performed_by=1)]

    with caplog.at_level(logging.ERROR, logger="app.audit.gaps"):
        assert service.record_within(entries) is False

    mock_db.commit.assert_not_called()
    mock_db.rollback.assert_not_called()
    assert len([r for r in caplog.records if r.name == "app.audit.gaps"]) == 1


def test_entry_defaults_to_empty_data():
    log_entry = AuditService.entry(AuditAction.ASSET_DELETED, AuditEntityType.ASSET, 3, performed_by=1)

    assert log_entry.entity_data == {}


def test_get_entity_history_newest_first(session: Session):
    service = AuditService(session)
    service.record(AuditAction.DELETION_REQUEST_SUBMITTED, AuditEntityType.DELETION_REQUEST, 5, performed_by=1)
    service.record(AuditAction.DELETION_REQUEST_REJECTED, AuditEntityType.DELETION_REQUEST, 5, performed_by=2)
    service.record(AuditAction.ASSET_DELETED, AuditEntityType.ASSET, 5, performed_by=2)

    history = service.get_entity_history(AuditEntityType.DELETION_REQUEST, 5)

    assert [log.action for log in history] == [
        AuditAction.DELETION_REQUEST_REJECTED,
        AuditAction.DELETION_REQUEST_SUBMITTED,
    ]


def test_get_audit_logs_filters(session: Session):
    service = AuditService(session)
    service.record(AuditAction.DELETION_REQUEST_SUBMITTED, AuditEntityType.DELETION_REQUEST, 5, performed_by=1)
    service.record(AuditAction.ASSET_DELETED, AuditEntityType.ASSET, 9, performed_by=2)

    logs, total = service.get_audit_logs(performed_by=2)

    assert total == 1
    assert len(logs) == 1
    assert logs[0].action == AuditAction.ASSET_DELETED


def test_get_entity_history_wraps_database_errors(mock_db):
    mock_db.exec.side_effect = _db_failure()

    with pytest.raises(AuditServiceError):
        AuditService(mock_db).get_entity_history(AuditEntityType.ASSET, 1)


def test_get_audit_logs_date_range_includes_whole_end_day(session: Session):
    """End dates are inclusive of the entire day; the total ignores paging."""
    for day, hour in [(1, 9), (2, 0), (2, 23), (3, 0), (5, 12)]:
        session.add(AuditLog(
            action=AuditAction.ASSET_DELETED,
            entity_type=AuditEntityType.ASSET,
            entity_id=day * 100 + hour,
            performed_by=1,
            created_at=datetime(2025, 3, day, hour, 30),
        ))
    session.commit()
    service = AuditService(session)

    logs, total = service.get_audit_logs(start_date=date(2025, 3, 2), end_date=date(2025, 3, 3))

    assert total == 3
    assert [log.entity_id for log in logs] == [300, 223, 200]

    page, total = service.get_audit_logs(start_date=date(2025, 3, 2), skip=1, limit=2)

    assert total == 4
    assert [log.entity_id for log in page] == [300, 223]

from sqlmodel import SQLModel

# Import all models here to ensure they are registered with SQLModel
from app.models.user import User  # noqa
from app.models.asset import Asset  # noqa
from app.models.deletion_request import DeletionRequest  # noqa
from app.models.audit_log import AuditLog  # noqa

__all__ = ["SQLModel"]

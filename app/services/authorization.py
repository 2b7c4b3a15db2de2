from typing import Optional
from sqlmodel import Session

from app.models.asset import Asset
from app.models.user import User


class AuthorizationGate:
    """Answers ownership and role questions for the deletion workflow."""

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> Optional[User]:
        """Active user by id, or None."""
        user = self.db.get(User, user_id)
        if user is None or not user.is_active:
            return None
        return user

    def is_owner(self, asset_id: int, user_id: int) -> bool:
        """True if `user_id` created the asset."""
        asset = self.db.get(Asset, asset_id)
        return asset is not None and asset.created_by == user_id

    def is_admin(self, user_id: int) -> bool:
        """True if `user_id` is an active admin."""
        user = self.get_user(user_id)
        return user is not None and user.is_admin

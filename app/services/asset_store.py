from typing import Optional
from sqlmodel import Session, delete, select

from app.models.asset import Asset


class AssetStore:
    """
    Minimal asset access used by the deletion workflow.

    Never commits: deletions run inside the caller's transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, asset_id: int) -> Optional[Asset]:
        """Get an asset by its ID."""
        return self.db.get(Asset, asset_id)

    def get_for_update(self, asset_id: int) -> Optional[Asset]:
        """
        Get an asset and lock its row until the transaction ends.

        While the lock is held, a concurrent insert referencing the asset
        waits, and fails on the foreign key once the asset is deleted.
        """
        statement = select(Asset).where(Asset.id == asset_id).with_for_update()
        return self.db.exec(statement).first()

    def exists(self, asset_id: int) -> bool:
        """True if the asset row is in the database, bypassing the identity map."""
        statement = select(Asset.id).where(Asset.id == asset_id)
        return self.db.exec(statement).first() is not None

    def delete(self, asset_id: int) -> bool:
        """Delete an asset; False if no row was removed."""
        deleted_count = self.db.exec(delete(Asset).where(Asset.id == asset_id)).rowcount
        return deleted_count == 1

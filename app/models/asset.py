from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import date, datetime


class AssetBase(SQLModel):
    """Base asset model with the fields the deletion workflow reads."""
    name: str = Field(max_length=255)
    cost: float = Field(ge=0)
    date_purchased: Optional[date] = Field(default=None)


class Asset(AssetBase, table=True):
    """Asset table model. Owned by the asset store, read by the deletion workflow."""
    __tablename__ = "assets"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_by: int = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default=None)

    def snapshot(self) -> dict:
        """JSON-safe copy of the asset for audit entries."""
        return {
            "name": self.name,
            "cost": self.cost,
            "date_purchased": self.date_purchased.isoformat() if self.date_purchased else None,
            "created_by": self.created_by,
        }

from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime


class UserBase(SQLModel):
    """Base user model with shared fields."""
    username: str = Field(unique=True, index=True, max_length=50)
    email: str = Field(unique=True, index=True, max_length=255)
    is_active: bool = Field(default=True)
    is_admin: bool = Field(default=False, description="Admin user allowed to review deletion requests")


class User(UserBase, table=True):
    """User table model. Accounts are provisioned outside the registry."""
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class UserResponse(UserBase):
    """Schema for user response."""
    id: int
    created_at: datetime

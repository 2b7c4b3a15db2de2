#!/usr/bin/env python3
"""
Database initialization script for the Asset Registry.

Creates the database tables directly from the models. Use Alembic
(`alembic upgrade head`) for databases that must be migrated in place.
"""

from sqlmodel import SQLModel

from app.core.config import settings
from app.db.base import *  # Import all models to register with SQLModel
from app.db.session import engine


def create_db_and_tables():
    """Create database tables."""
    print("Creating database tables...")
    
    SQLModel.metadata.create_all(engine)
    
    print("Database tables created successfully!")
    print(f"Database URL: {settings.database_url}")
    print("\nTables created:")
    for table in SQLModel.metadata.tables.keys():
        print(f"  - {table}")


if __name__ == "__main__":
    create_db_and_tables()

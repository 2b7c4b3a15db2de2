from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine

from app.core.config import settings


def create_db_engine(database_url: str, **kwargs) -> Engine:
    """Create an engine, making SQLite honour foreign keys and savepoints."""
    engine = create_engine(database_url, **kwargs)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _sqlite_on_connect(dbapi_connection, connection_record):
            # Let SQLAlchemy drive BEGIN so SAVEPOINT/ROLLBACK work as expected
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _sqlite_on_begin(conn):
            conn.exec_driver_sql("BEGIN")

    return engine


engine = create_db_engine(
    settings.database_url,
    echo=settings.sql_echo if settings.sql_echo is not None else settings.debug,
)


def get_session():
    """Dependency to get database session."""
    with Session(engine) as session:
        yield session

"""
Database engine and session management.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from salesboard.constants import DATABASE_URL


def create_db_engine(url: str, **kwargs):
    """Create an engine; SQLite connections get foreign keys and same-thread access relaxed"""
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        db_engine = create_engine(url, connect_args=connect_args, **kwargs)

        @event.listens_for(db_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return db_engine

    return create_engine(url, pool_pre_ping=True, **kwargs)


engine = create_db_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """FastAPI dependency yielding a session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

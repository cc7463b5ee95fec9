from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from .config import settings


def _enable_sqlite_fk(dbapi_connection, _):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: str) -> Engine:
    """Create an engine; SQLite connections get foreign keys and a busy timeout."""
    is_sqlite = url.startswith("sqlite")
    # check_same_thread=False: SQLite is used from FastAPI worker threads;
    # timeout: concurrent writers wait for the lock
    connect_args = {"check_same_thread": False, "timeout": 30} if is_sqlite else {}
    engine = create_engine(url, connect_args=connect_args)

    if is_sqlite:
        event.listen(engine, "connect", _enable_sqlite_fk)

    return engine


engine = make_engine(settings.resolved_database_url)

# Session factory for request handlers and background tasks
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# FastAPI dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

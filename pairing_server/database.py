"""SQLite engine for registrations, device tokens and users."""

from sqlalchemy import event
from sqlmodel import SQLModel, Session, create_engine

from pairing_server.config import settings

# Table registration happens on import
import pairing_server.models  # noqa: F401

engine = create_engine(
    f"sqlite:///{settings.db_path}",
    echo=settings.debug,
    connect_args={"check_same_thread": False, "timeout": 15},
)


@event.listens_for(engine, "connect")
def _configure_connection(dbapi_connection, connection_record) -> None:
    # WAL keeps last_used_at writes from blocking token lookups
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def init_db() -> None:
    SQLModel.metadata.create_all(engine)


def get_session():
    """FastAPI dependency: one session per request, shared by every store."""
    with Session(engine) as session:
        yield session

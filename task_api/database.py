"""
Credential store connection. DATABASE_URL picks the backend; every request gets its own Session.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from task_api.config import DATABASE_URL
from task_api.models import Base

_IN_MEMORY_SQLITE = ("sqlite://", "sqlite:///:memory:")


def _engine_options(url: str) -> dict:
    if url in _IN_MEMORY_SQLITE:
        # One shared connection, or each session would see its own empty database
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    if url.startswith("sqlite"):
        # Sessions are used from FastAPI's worker threads
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)


def get_db():
    """Dependency: one Session per request, closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

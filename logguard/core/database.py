from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from logguard.core.config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are shared with worker threads
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args(settings.DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    """Create all tables that do not exist yet."""
    # Models register themselves on Base when imported
    import logguard.models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
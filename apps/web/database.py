"""
Local SQLite persistence for the tab's session state.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import settings


Base = declarative_base()


def create_session_engine(database_url: str = None) -> Engine:
    """Create the engine backing the session store."""
    url = database_url or settings.SESSION_DATABASE_URL
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, future=True)


def create_session_maker(engine: Engine) -> sessionmaker:
    """Build a session factory and make sure the schema exists."""
    import models  # noqa: F401

    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False, future=True)

"""
Database engine and session factory
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import settings

Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """Create a SQLAlchemy engine, allowing SQLite to be shared across threads"""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


def create_session_factory(bind: Engine) -> sessionmaker:
    # Parties are handed to the engine after commit, so keep their attributes loaded
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=bind)


engine = create_db_engine(settings.DATABASE_URL)

"""
Database setup for the SQL storage medium.
Uses SQLite locally; set DATABASE_URL (e.g. Postgres) to store elsewhere.
"""

import os
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Heroku-style postgres:// URLs; SQLAlchemy 2.x expects postgresql://
_raw_url = os.environ.get("DATABASE_URL")
if _raw_url and _raw_url.startswith("postgres://"):
    DATABASE_URL = _raw_url.replace("postgres://", "postgresql://", 1)
elif _raw_url:
    DATABASE_URL = _raw_url
else:
    DB_DIR = os.path.dirname(os.path.abspath(__file__))
    DATABASE_URL = f"sqlite:///{os.path.join(DB_DIR, 'dice.db')}"

Base = declarative_base()

IN_MEMORY_SQLITE_URLS = ("sqlite://", "sqlite:///:memory:")


def create_db_engine(database_url: str = DATABASE_URL) -> Engine:
    """Engine for the given URL. In-memory SQLite shares one connection across threads."""
    if database_url in IN_MEMORY_SQLITE_URLS:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    # SQLite needs check_same_thread=False; other backends do not take that arg
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create all tables."""
    # Models must be imported so their tables are registered on Base
    from dice_creator.storage import models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def get_db_file_path(database_url: str = DATABASE_URL) -> str | None:
    """Filesystem path of a file-backed SQLite database, else None."""
    prefix = "sqlite:///"
    if not database_url.startswith(prefix) or database_url in IN_MEMORY_SQLITE_URLS:
        return None
    return database_url[len(prefix):]

# study_aid/database.py
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy_utils import database_exists, create_database

from study_aid.config import settings

logger = logging.getLogger(__name__)

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# SQLite connections are shared with the threadpool that runs blocking work
connect_args = {"check_same_thread": False} if SQLALCHEMY_DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    """Creates the database (where the backend needs it) and any missing tables."""
    bind = bind or engine
    from study_aid import models  # noqa: F401  registers the tables on Base

    if not database_exists(bind.url):
        logger.info(f"Creating database at {bind.url}")
        create_database(bind.url)
    Base.metadata.create_all(bind=bind)


def get_db():
    """Yields a session per request and always closes it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

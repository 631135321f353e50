"""
db.py
=====
SQLite engine and session handling for the booking backend.
 - build_engine: engine for a database file, creating its directory
 - get_db: FastAPI dependency, one session per request
 - session_scope: commit-or-rollback block for startup seeding and scripts
"""

import logging
import os
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .config import DB_PATH

logger = logging.getLogger(__name__)


def build_engine(db_path: str) -> Engine:
    """Engine for the SQLite file at ``db_path``; its parent directory is created if missing."""
    db_dir = os.path.dirname(db_path)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    # Request handlers run in a threadpool, so the thread check must be off
    return create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})


engine = build_engine(DB_PATH)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Dependency injection generator.
    Yields a database session, closes when done.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(factory: sessionmaker = None):
    """
    Session that commits when the block exits cleanly and rolls back
    (re-raising) when it does not.
    """
    db: Session = (factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        logger.exception("Rolling back database session")
        db.rollback()
        raise
    finally:
        db.close()


def init_db(Base, bind: Engine = None):
    """Create missing tables. Called once on FastAPI startup."""
    Base.metadata.create_all(bind=bind or engine)

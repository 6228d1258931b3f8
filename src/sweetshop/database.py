"""Database setup for the sweet shop catalog and user accounts."""

import logging
from datetime import datetime, timezone
from typing import NoReturn

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .errors import InternalError

logger = logging.getLogger(__name__)

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def build_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # sessions are opened and closed on different worker threads
        connect_args["check_same_thread"] = False
    return create_engine(database_url, future=True, connect_args=connect_args)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


def init_db(engine: Engine) -> None:
    """Create database tables if they do not exist."""
    # register the mapped classes on Base.metadata
    from .models import sweet, user  # noqa: F401

    Base.metadata.create_all(bind=engine)


def handle_storage_error(session: Session, exc: SQLAlchemyError) -> NoReturn:
    """Rollback and hide a storage failure behind a generic 500."""
    session.rollback()
    logger.exception("storage error", exc_info=exc)
    raise InternalError() from exc

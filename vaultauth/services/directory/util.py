"""Helpers and Flask application integration."""

from typing import Generator
from datetime import datetime
from contextlib import contextmanager
import logging

from flask import Flask
from pytz import UTC
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.session import Session

from .models import db
from .exceptions import Unavailable

logger = logging.getLogger(__name__)


def now() -> int:
    """Get the current epoch/unix time."""
    return epoch(datetime.now(tz=UTC))


def epoch(t: datetime) -> int:
    """Convert a :class:`.datetime` to UNIX time."""
    return int(round(t.timestamp()))


@contextmanager
def transaction() -> Generator[Session, None, None]:
    """Context manager for database transaction."""
    try:
        yield db.session
        db.session.commit()
    except OperationalError as e:
        logger.error('Database unavailable, rolling back: %s', e)
        db.session.rollback()
        raise Unavailable('Directory database unavailable') from e
    except Exception as e:
        logger.debug('Commit failed, rolling back: %s', e)
        db.session.rollback()
        raise


def init_app(app: Flask) -> None:
    """Set configuration defaults and attach session to the application."""
    app.config.setdefault('SQLALCHEMY_DATABASE_URI',
                          app.config.get('DIRECTORY_DATABASE_URI',
                                         'sqlite://'))
    app.config.setdefault('SQLALCHEMY_TRACK_MODIFICATIONS', False)
    db.init_app(app)


def current_session() -> Session:
    """Get/create database session for this context."""
    return db.session


def create_all() -> None:
    """Create all tables in the database."""
    db.create_all()


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()


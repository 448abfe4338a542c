# backend/leasekeeper/db.py
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import settings
from .errors import StoreError


class Base(DeclarativeBase):
    pass


def _connect_args(url: str) -> dict:
    # sqlite connections are shared between the request thread pool and workers
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.database_url),
)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)


def init_db() -> None:
    from . import models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(bind=engine)


def get_db():
    """
    Request-scoped session.

    Every lifecycle step commits its own single-row write, so a failure here
    only has to discard whatever the failing step left pending.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def committing(db: Session, what: str) -> Iterator[None]:
    """
    Commit the writes made inside the block as one unit.

    SQLAlchemy failures are rolled back and surfaced as StoreError so callers
    (and the saga runner) only deal with the lifecycle error taxonomy.
    """
    try:
        yield
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"{what} failed: {type(e).__name__}: {e}") from e

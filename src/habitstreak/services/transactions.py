"""Transactional access to the stores, translating driver errors."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..domain.repositories.stores import Stores
from ..errors import StorageFailure
from ..infra.database import SessionFactory
from ..infra.repositories import sqlmodel_stores
from ..logging_config import get_logger

logger = get_logger("services.transactions")

StoresFactory = Callable[[Session], Stores]


@contextmanager
def session_transaction(session_factory: SessionFactory, *, operation: str) -> Iterator[Session]:
    """Yield one session; commit on success, roll back on any error.

    ``SQLAlchemyError`` is re-raised as ``StorageFailure``; domain errors pass through.
    """

    try:
        with session_factory() as session:
            yield session
    except SQLAlchemyError as exc:
        logger.error(
            "Storage failure; transaction rolled back",
            exc_info=True,
            extra={"operation": operation},
        )
        raise StorageFailure(f"{operation} failed: {exc}") from exc


@contextmanager
def store_transaction(
    session_factory: SessionFactory,
    stores_factory: StoresFactory = sqlmodel_stores,
    *,
    operation: str,
) -> Iterator[Stores]:
    """Yield stores sharing one session, with ``session_transaction`` semantics."""

    with session_transaction(session_factory, operation=operation) as session:
        yield stores_factory(session)


__all__ = ["StoresFactory", "session_transaction", "store_transaction"]

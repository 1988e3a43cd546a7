"""
Module: procure_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/ and models/.
    Selectors NEVER create, modify, or delete data.

Invariants enforced:
    - Read-only access: selectors use the caller's Session but never call
      add(), delete(), commit() or flush().
    - DTO return convention: selectors return frozen dataclasses or plain
      dicts, not ORM instances.
    - Database failures surface as DataFetchError, chained to the driver
      error.
"""

from abc import ABC
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from procure_kernel.exceptions import DataFetchError
from procure_kernel.logging_config import get_logger

logger = get_logger("selectors")

T = TypeVar("T")


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session):
        self.session = session

    def _fetch(self, source: str, query: Callable[[], T]) -> T:
        """
        Run ``query`` and translate database errors.

        Raises:
            DataFetchError: wrapping any SQLAlchemyError raised by ``query``.
        """
        try:
            return query()
        except SQLAlchemyError as exc:
            logger.error("selector_fetch_failed", extra={
                "source": source,
                "error_type": type(exc).__name__,
            })
            raise DataFetchError(source, str(exc)) from exc

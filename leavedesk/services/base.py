import logging
from datetime import date, datetime, timezone

from sqlalchemy.orm import Session


def utcnow() -> datetime:
    """Naive UTC wall clock used for every timestamp the application stamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_today() -> date:
    return utcnow().date()


class BaseService:
    """
    Shared plumbing for domain services: the request-scoped session and a
    per-class logger. Services commit their own unit of work.
    """

    def __init__(self, db: Session):
        self.db = db
        self._logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    def commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def log_info(self, message: str, **extra):
        self._logger.info(message, extra=extra or None)

    def log_warning(self, message: str, **extra):
        self._logger.warning(message, extra=extra or None)

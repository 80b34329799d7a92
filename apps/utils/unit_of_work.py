import logging
import time
from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, OperationalError, connections, transaction
from apps.utils.exceptions import Unavailable

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    Explicit all-or-nothing boundary over ``transaction.atomic``.

        with UnitOfWork() as uow:
            ...writes...
            uow.commit()

    Leaving the block without ``commit()`` (or with an exception) rolls back
    every write made inside it. The unit is bounded by
    ``STOCK_OPERATION_TIMEOUT_MS``: on PostgreSQL the budget is pushed down as
    a statement timeout, and on every backend ``commit()`` refuses to commit
    once the budget is spent. Database ``OperationalError`` surfaces as
    ``Unavailable`` so callers can retry.
    """
    clock = staticmethod(time.monotonic)

    def __init__(self, using=None, timeout_ms=None):
        self.using = using or DEFAULT_DB_ALIAS
        if timeout_ms is None:
            timeout_ms = getattr(settings, "STOCK_OPERATION_TIMEOUT_MS", 5000)
        self.timeout_ms = timeout_ms
        self._atomic = None
        self._started = None
        self.committed = False

    @property
    def active(self):
        return self._atomic is not None

    def begin(self):
        if self.active:
            raise RuntimeError("UnitOfWork already started")
        self._atomic = transaction.atomic(using=self.using)
        self._atomic.__enter__()
        self._started = self.clock()
        self.committed = False
        try:
            self._apply_statement_timeout()
        except OperationalError as e:
            self.rollback()
            raise Unavailable("Database is unavailable.") from e
        return self

    def _apply_statement_timeout(self):
        connection = connections[self.using]
        if connection.vendor != "postgresql" or not self.timeout_ms:
            return
        with connection.cursor() as cursor:
            cursor.execute("SET LOCAL statement_timeout = %s", [int(self.timeout_ms)])

    def elapsed_ms(self):
        if self._started is None:
            return 0.0
        return (self.clock() - self._started) * 1000

    def commit(self):
        if not self.active:
            raise RuntimeError("UnitOfWork is not active")
        if self.timeout_ms and self.elapsed_ms() > self.timeout_ms:
            self.rollback()
            raise Unavailable("Stock operation timed out; no changes were saved.", code="timeout")

        atomic, self._atomic = self._atomic, None
        try:
            atomic.__exit__(None, None, None)
        except OperationalError as e:
            raise Unavailable("Database is unavailable.") from e
        self.committed = True

    def rollback(self):
        if not self.active:
            return
        transaction.set_rollback(True, using=self.using)
        atomic, self._atomic = self._atomic, None
        atomic.__exit__(None, None, None)

    def __enter__(self):
        return self.begin()

    def __exit__(self, exc_type, exc, tb):
        if not self.active:
            return False

        if exc_type is None:
            # Left the block without committing
            self.rollback()
            return False

        atomic, self._atomic = self._atomic, None
        atomic.__exit__(exc_type, exc, tb)
        if isinstance(exc, OperationalError):
            logger.warning(f"Rolled back unit of work on database error: {exc}")
            raise Unavailable("Database is unavailable.") from exc
        return False

import time
import functools
import logging
from django.conf import settings
from apps.utils.exceptions import BusinessLogicException

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    Re-invokes the wrapped call when it raises a retryable
    BusinessLogicException (Conflict / Unavailable). Everything else,
    including non-retryable domain errors, propagates on the first raise.

    All attempts share one budget (``STOCK_OPERATION_TIMEOUT_MS`` unless
    ``budget_ms`` is given): once the next backoff would overrun it, the last
    error is raised instead of retrying.
    """
    def __init__(self, attempts=None, backoff_ms=None, budget_ms=None, sleep=time.sleep, clock=time.monotonic):
        self.attempts = attempts
        self.backoff_ms = backoff_ms
        self.budget_ms = budget_ms
        self.sleep = sleep
        self.clock = clock

    def _attempts(self):
        if self.attempts is not None:
            return self.attempts
        return getattr(settings, "STOCK_RETRY_ATTEMPTS", 3)

    def _backoff_ms(self):
        if self.backoff_ms is not None:
            return self.backoff_ms
        return getattr(settings, "STOCK_RETRY_BACKOFF_MS", 50)

    def _budget_ms(self):
        if self.budget_ms is not None:
            return self.budget_ms
        return getattr(settings, "STOCK_OPERATION_TIMEOUT_MS", 5000)

    def __call__(self, func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            attempts = max(1, self._attempts())
            budget_ms = self._budget_ms()
            started = self.clock()
            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except BusinessLogicException as e:
                    if not e.retryable or attempt == attempts:
                        raise
                    delay = self._backoff_ms() * (2 ** (attempt - 1)) / 1000.0
                    elapsed_ms = (self.clock() - started) * 1000
                    if budget_ms and elapsed_ms + delay * 1000 >= budget_ms:
                        logger.warning(
                            f"{func.__name__} gave up after attempt {attempt}/{attempts}: "
                            f"{elapsed_ms:.0f}ms of {budget_ms}ms budget spent"
                        )
                        raise
                    logger.info(
                        f"{func.__name__} attempt {attempt}/{attempts} failed ({e.code}); "
                        f"retrying in {delay:.3f}s"
                    )
                    self.sleep(delay)

        return wrapper


def with_retry(func, *args, attempts=None, backoff_ms=None, budget_ms=None, **kwargs):
    """Call `func(*args, **kwargs)` under a RetryPolicy."""
    return RetryPolicy(attempts=attempts, backoff_ms=backoff_ms, budget_ms=budget_ms)(func)(*args, **kwargs)

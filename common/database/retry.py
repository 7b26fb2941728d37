"""
Retry policy for transient MongoDB failures.

Only network/availability errors are retried, and only around operations
that are safe to repeat (reads and idempotent writes). Everything else is
terminal for the attempted operation.

Example:
    from common.database import retry_transient

    class CircleService:
        @retry_transient
        async def leave_circle(self, circle_id: str, user_id: str) -> None:
            ...
"""

import logging

from pymongo.errors import AutoReconnect, NetworkTimeout, ServerSelectionTimeoutError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

logger = logging.getLogger(__name__)

# AutoReconnect also covers ConnectionFailure subclasses raised mid-operation
TRANSIENT_STORE_ERRORS = (AutoReconnect, NetworkTimeout, ServerSelectionTimeoutError)

DEFAULT_ATTEMPTS = 3


def transient_retry_policy(attempts: int = DEFAULT_ATTEMPTS):
    """
    Build a tenacity decorator for store round trips.

    Args:
        attempts: Total attempts including the first call

    Returns:
        Decorator that retries TRANSIENT_STORE_ERRORS with exponential backoff
        and re-raises the last error once attempts are exhausted
    """
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2) + wait_random(0, 0.1),
        retry=retry_if_exception_type(TRANSIENT_STORE_ERRORS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )


retry_transient = transient_retry_policy()

import logging
import time

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


def retrying(exceptions, attempts: int = 3, delay: float = 1.0, sleep=time.sleep) -> Retrying:
    """Retry controller for page loads and database writes.

    Waits delay, 2 * delay, ... between attempts. Only `exceptions` are
    retried; anything else, and the last failure once attempts run out,
    propagates unchanged. Call it like the function it wraps:
    `retrying((OSError,))(fn, *args)`.
    """
    return Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=delay),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.DEBUG),
        sleep=sleep,
        reraise=True,
    )

import logging
import time
from typing import Callable, Tuple, Type, TypeVar

from .errors import RpcTransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_with_backoff(
    fn: Callable[[], T],
    max_retries: int = 3,
    base_delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (RpcTransportError,),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``fn`` up to ``max_retries`` times, sleeping ``base_delay * 2**attempt``
    between attempts. Only exceptions in ``retry_on`` are retried; the last one is
    re-raised.
    """
    attempts = max(1, int(max_retries))
    for attempt in range(attempts):
        try:
            return fn()
        except retry_on as exc:
            if attempt >= attempts - 1:
                raise
            delay = base_delay * (2**attempt)
            logger.info("Attempt %d/%d failed (%s); retrying in %.2fs", attempt + 1, attempts, exc, delay)
            sleep(delay)
    raise RuntimeError("retry_with_backoff exhausted without raising.")

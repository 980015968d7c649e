"""Retry logic with exponential backoff"""

import time
from typing import Callable, Any, Tuple, Type
from smartkas.utils.logging import get_logger
from smartkas.utils.errors import SmartKasError

logger = get_logger(__name__)


def retry_with_exponential_backoff(
    func: Callable,
    *args,
    max_retries: int = 3,
    base_delay: float = 1,
    max_delay: float = 30,
    error_cls: Type[SmartKasError] = SmartKasError,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    **kwargs
) -> Any:
    """
    Retry function with exponential backoff

    Args:
        func: Function to retry
        *args, **kwargs: Arguments to pass to func
        max_retries: Maximum attempts
        base_delay: Delay before the second attempt, in seconds
        max_delay: Cap on any single delay
        error_cls: Exception raised once retries are exhausted
        retry_on: Exception types worth retrying; others propagate immediately

    Returns:
        Function result

    Raises:
        error_cls: If all retries exhausted
    """
    for attempt in range(max_retries):
        try:
            return func(*args, **kwargs)

        except retry_on as e:
            if attempt == max_retries - 1:
                logger.error(f"All {max_retries} retry attempts exhausted", error=str(e))
                raise error_cls(f"Failed after {max_retries} attempts: {e}") from e

            delay = min(base_delay * (2 ** attempt), max_delay)
            logger.warning(f"Attempt {attempt + 1} failed, retrying in {delay}s: {e}")
            time.sleep(delay)

    raise error_cls("retry_with_exponential_backoff called with max_retries < 1")

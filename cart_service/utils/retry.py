# cart_service/utils/retry.py
import logging

import redis
import requests
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from cart_service.utils.settings import RETRY_ATTEMPTS
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)


def _retry_on(exc_type, min_wait: float, max_wait: float):
    # only transport errors are retried, the last one is re-raised unchanged
    return retry(
        reraise=True,
        stop=stop_after_attempt(RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exc_type),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )


def http_retry():
    """Product service calls."""
    return _retry_on(requests.RequestException, 0.3, 3)


def redis_retry():
    """Checkout lock calls."""
    return _retry_on(redis.RedisError, 0.2, 2)

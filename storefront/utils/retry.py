# storefront/utils/retry.py
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

from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# outbound calls to the auth provider and the payment gateway
HTTP_ATTEMPTS = 3
# checkout lock and wizard store
REDIS_ATTEMPTS = 3


def http_retry():
    """
    Retries connection failures and timeouts only. A response with an
    error status is an answer, so it goes straight back to the caller.
    """
    return retry(
        reraise=True,
        stop=stop_after_attempt(HTTP_ATTEMPTS),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(REDIS_ATTEMPTS),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type((redis.ConnectionError, redis.TimeoutError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )

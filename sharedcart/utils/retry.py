# sharedcart/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import requests
import redis

from sharedcart.domain.errors import ConcurrencyConflict
from sharedcart.utils.settings import OPTIMISTIC_RETRY_ATTEMPTS


def http_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(requests.RequestException),
    )


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
    )


#optimistic locking: przy konflikcie wersji czytamy koszyk od nowa i powtarzamy komende
def conflict_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(OPTIMISTIC_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.02, min=0.02, max=0.5),
        retry=retry_if_exception_type(ConcurrencyConflict),
    )

# sharedcart/services/lock_service.py
import uuid
from contextlib import contextmanager

import redis
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from sharedcart.domain.errors import ConcurrencyConflict
from sharedcart.utils.retry import redis_retry
from sharedcart.utils.settings import REDIS_URL, CART_LOCK_TTL_SECONDS
from sharedcart.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje skrypt lua atomowo, nie mozna wcisnac sie miedzy GET a DEL,
#wiec nie zwolnimy locka ktory po TTL przejal ktos inny


class LockService:
    """
    -mutex per koszyk (lock)
    -zwalnianie locka tylko przez wlasciciela tokenu
    -atomowosc przy pomocy lua
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _key(cart_id: int) -> str:
        return f"shared_cart:{cart_id}:lock"

    @redis_retry()
    def acquire_cart_lock(self, cart_id: int, token: str, ttl: int = CART_LOCK_TTL_SECONDS) -> bool:
        key = self._key(cart_id)
        logger.info(f"Acquire lock {key}")
        #SET shared_cart:1:lock "<token>" NX EX 30
        return bool(
            self.redis.set(
                name=key,
                value=token,
                nx=True,  #tylko jesli klucz nie istnieje
                ex=ttl,  #wygasa sam, nawet jak proces padnie
            )
        )

    @redis_retry()
    def release_cart_lock(self, cart_id: int, token: str) -> bool:
        key = self._key(cart_id)
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    @retry(
        reraise=True,
        stop=stop_after_attempt(10),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=1),
        retry=retry_if_exception_type(ConcurrencyConflict),
    )
    def _acquire_or_wait(self, cart_id: int, token: str) -> None:
        if not self.acquire_cart_lock(cart_id, token):
            raise ConcurrencyConflict(f"Cart {cart_id} is locked by another operation")

    @contextmanager
    def cart_lock(self, cart_id: int):
        token = uuid.uuid4().hex
        self._acquire_or_wait(cart_id, token)
        try:
            yield
        finally:
            try:
                self.release_cart_lock(cart_id, token)
            except redis.RedisError as e:
                # lock i tak wygasnie po TTL
                logger.warning(f"Failed to release lock for cart {cart_id}: {e}")

# cart_service/services/lock_service.py
import redis

from cart_service.utils.retry import redis_retry
from cart_service.utils.settings import REDIS_URL
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)

# compare-and-delete in one Lua call, so a lock that already expired and was
# taken by someone else is never released by the previous holder
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    Per-user checkout lock in Redis.
    - SET NX EX so only one checkout per user runs at a time
    - the lock expires on its own if the holder dies
    - release only by the token that acquired it
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def checkout_key(user_id: int) -> str:
        return f"checkout:{user_id}:lock"

    @redis_retry()
    def acquire_checkout_lock(self, user_id: int, token: str, ttl: int) -> bool:
        key = self.checkout_key(user_id)
        logger.info(f"Acquire lock {key}")
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release_checkout_lock(self, user_id: int, token: str) -> bool:
        key = self.checkout_key(user_id)
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

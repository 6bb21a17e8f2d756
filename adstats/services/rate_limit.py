"""
Per-ad-account API call budget, shared across worker processes via Redis.

Fixed one-hour window per account: the first call INCRs the counter and sets
its expiry; once the counter passes max_calls, check() raises
RateLimitExceeded until the key expires. Redis errors fail open.
"""
import logging

import redis

from adstats.exceptions import RateLimitExceeded

logger = logging.getLogger('services.rate_limit')

WINDOW_SECONDS = 3600


class RateLimiter:
    """
    Usage:
        limiter = RateLimiter(redis_client, max_calls=200)
        limiter.check('123456789')   # raises RateLimitExceeded when spent
    """

    PREFIX = 'ratelimit:meta'

    def __init__(self, redis_client, max_calls=200, window_seconds=WINDOW_SECONDS):
        self.redis = redis_client
        self.max_calls = max_calls
        self.window_seconds = window_seconds

    def _key(self, account_id):
        return f'{self.PREFIX}:{account_id}'

    def check(self, account_id):
        """Consume one call for account_id."""
        key = self._key(account_id)
        try:
            count = int(self.redis.incr(key))
            if count == 1:
                self.redis.expire(key, self.window_seconds)
            if count <= self.max_calls:
                return
            retry_after = self.redis.ttl(key)
            if retry_after is None or retry_after < 0:
                # Key lost its expiry; restart the window
                self.redis.expire(key, self.window_seconds)
                retry_after = self.window_seconds
        except redis.RedisError:
            logger.warning("Rate limiter Redis error for account %s — allowing call",
                           account_id, exc_info=True)
            return

        logger.warning("Rate limit exceeded for ad account %s. Retry after %ss",
                       account_id, retry_after)
        raise RateLimitExceeded(account_id, retry_after=retry_after)

"""
Shared client instances — Redis.

redis.from_url() does not connect until the first command, so importing this
module is always safe (even when Redis is unreachable during tests).
"""
import redis

from adstats.config import REDIS_URL

# ── Redis ─────────────────────────────────────────────────────────────────────
# Text client for counters (rate limiter)
redis_client = redis.from_url(REDIS_URL, decode_responses=True)

# RQ pickles job payloads, so its connection must return raw bytes
queue_redis = redis.from_url(REDIS_URL)

# vendorwatch/services/rate_limiter.py
"""
Per-domain politeness for the scraper/crawler.

- get_redis()
    Shared lazily-connected Redis client (also used by services.store).

- allow_domain_request(domain, max_requests, window_seconds)
    Sliding-window limiter on a Redis sorted set. True if the request may go out.

- ensure_local_cooldown(domain, min_interval_seconds)
    In-process minimum spacing between requests to one domain.

Redis being down never blocks monitoring: the distributed limiter allows the
request and the local cooldown still applies.
"""
from __future__ import annotations
import logging
import time
from typing import Dict, Optional

from redis import Redis, RedisError

from vendorwatch.config import cfg

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

_redis_client: Optional[Redis] = None


def get_redis() -> Optional[Redis]:
    global _redis_client
    if _redis_client is not None:
        return _redis_client
    try:
        client = Redis.from_url(cfg.REDIS_URL, decode_responses=True)
        client.ping()
    except (RedisError, ValueError) as e:
        logger.warning("Redis not available at %s: %s", cfg.REDIS_URL, e)
        return None
    _redis_client = client
    logger.debug("Connected to Redis")
    return _redis_client


def allow_domain_request(domain: str, max_requests: int, window_seconds: int) -> bool:
    # Key: vw:rl:domain:<domain>, members are request timestamps in ms
    r = get_redis()
    if r is None:
        logger.debug("Redis unavailable; allowing request to %s", domain)
        return True

    key = f"vw:rl:domain:{domain}"
    now_ms = int(time.time() * 1000)
    try:
        r.zremrangebyscore(key, 0, now_ms - window_seconds * 1000)
        count = r.zcard(key)
        if count >= max_requests:
            logger.debug("Domain %s rate limited (%s >= %s in %ss)", domain, count, max_requests, window_seconds)
            return False
        r.zadd(key, {str(now_ms): now_ms})
        r.expire(key, window_seconds + 5)
        return True
    except RedisError as e:
        logger.exception("Redis error in allow_domain_request: %s", e)
        return True


_DOMAIN_LAST_ACCESS: Dict[str, float] = {}


def ensure_local_cooldown(domain: str, min_interval_seconds: float) -> None:
    """Sleep just long enough that two requests to domain are min_interval_seconds apart."""
    last = _DOMAIN_LAST_ACCESS.get(domain)
    if last is not None:
        wait = min_interval_seconds - (time.time() - last)
        if wait > 0:
            logger.debug("Local cooldown: sleeping %.3fs for %s", wait, domain)
            time.sleep(wait)
    _DOMAIN_LAST_ACCESS[domain] = time.time()


def wait_for_slot(domain: str, max_requests: int, window_seconds: int,
                  min_interval_seconds: float, max_wait_seconds: float = 30.0) -> bool:
    """
    Block until the distributed limiter admits a request to domain (polling),
    then apply the local cooldown. False if max_wait_seconds elapsed first.
    """
    deadline = time.time() + max_wait_seconds
    while not allow_domain_request(domain, max_requests, window_seconds):
        if time.time() >= deadline:
            logger.warning("Gave up waiting for rate-limit slot on %s", domain)
            return False
        time.sleep(min(1.0, max(0.0, deadline - time.time())))
    ensure_local_cooldown(domain, min_interval_seconds)
    return True

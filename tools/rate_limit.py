import time
import uuid
import redis
import os
from collections import OrderedDict, deque
from typing import Callable, Deque, Optional
from loguru import logger


class RateLimiter:
    """Sliding-window request counter keyed by client identifier.

    Uses a Redis sorted set per key so limits are shared between workers;
    when Redis is unreachable the window is tracked in this instance only.
    """

    def __init__(
        self,
        limit: int,
        window: float,
        clock: Callable[[], float] = time.time,
        redis_url: Optional[str] = None,
        max_keys: int = 10_000,
        client: Optional[redis.Redis] = None,
    ):
        self.limit = limit
        self.window = window
        self.clock = clock
        self.max_keys = max_keys
        self._memory: "OrderedDict[str, Deque[float]]" = OrderedDict()

        if client is not None:
            self.r = client
            return

        try:
            self.r = redis.from_url(redis_url or os.getenv("REDIS_URL", "redis://localhost:6379"))
            self.r.ping()
            logger.info("Redis connection established for rate limiting")
        except redis.RedisError as e:
            logger.warning(f"Redis unavailable, rate limiting in-process only: {e}")
            self.r = None

    def hit(self, key: str) -> bool:
        """
        Record a request for ``key``.

        Returns:
            True if the request fits in the current window, False if over the limit
        """
        if not key:
            logger.warning("Empty key provided to rate limiter")
            return False

        now = self.clock()
        if self.r is not None:
            try:
                return self._hit_redis(key, now)
            except redis.RedisError as e:
                logger.error(f"Redis rate limit check failed, using in-process window: {e}")
        return self._hit_memory(key, now)

    def _hit_redis(self, key: str, now: float) -> bool:
        name = f"ratelimit:{key}"
        member = f"{now:.6f}:{uuid.uuid4().hex}"

        # Record the hit and count in one MULTI so concurrent workers see each other
        pipe = self.r.pipeline(transaction=True)
        pipe.zremrangebyscore(name, 0, now - self.window)
        pipe.zadd(name, {member: now})
        pipe.zcard(name)
        pipe.expire(name, max(int(self.window), 1))
        _, _, count, _ = pipe.execute()

        if count > self.limit:
            self.r.zrem(name, member)
            return False
        return True

    def _hit_memory(self, key: str, now: float) -> bool:
        hits = self._memory.get(key)
        if hits is None:
            if len(self._memory) >= self.max_keys:
                self._memory.popitem(last=False)
            hits = deque()
            self._memory[key] = hits
        else:
            self._memory.move_to_end(key)

        while hits and hits[0] <= now - self.window:
            hits.popleft()

        if len(hits) >= self.limit:
            return False
        hits.append(now)
        return True

    def reset(self, key: str) -> None:
        """Forget all recorded hits for ``key`` (for testing/debugging)."""
        self._memory.pop(key, None)
        if self.r is not None:
            try:
                self.r.delete(f"ratelimit:{key}")
            except redis.RedisError as e:
                logger.error(f"Failed to clear rate limit key: {e}")

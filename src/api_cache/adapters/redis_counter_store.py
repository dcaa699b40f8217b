"""Redis-backed counter store for distributed rate limiting."""

from dataclasses import dataclass, field
from typing import Any

import redis

from api_cache.services.counters import CounterStore

# INCRBY and EXPIRE run as one script so concurrent increments from other
# processes cannot observe a counter without its window expiry.
_INCREMENT_SCRIPT = """
local current = redis.call('INCRBY', KEYS[1], ARGV[1])
if redis.call('TTL', KEYS[1]) < 0 then
    redis.call('EXPIRE', KEYS[1], ARGV[2])
end
return current
"""


@dataclass
class RedisCounterStore(CounterStore):
    """Fixed-window counters stored as Redis integers with a TTL."""

    client: redis.Redis
    _increment: Any = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._increment = self.client.register_script(_INCREMENT_SCRIPT)

    @classmethod
    def create(cls, redis_url: str) -> "RedisCounterStore":
        """Create a counter store with its own Redis connection pool."""
        return cls(client=redis.Redis.from_url(redis_url, decode_responses=True))

    def increment(self, key: str, amount: int, decay_seconds: int) -> int:
        """Atomically add to the window, opening it if absent."""
        return int(self._increment(keys=[key], args=[amount, decay_seconds]))

    def attempts(self, key: str) -> int:
        """Return the current window's count."""
        value = self.client.get(key)
        return int(value) if value is not None else 0

    def available_in(self, key: str) -> int:
        """Return seconds until the window expires."""
        ttl = self.client.ttl(key)
        return max(0, int(ttl))

    def clear(self, key: str) -> None:
        """Drop the window."""
        self.client.delete(key)

    def close(self) -> None:
        """Close the underlying connection pool."""
        self.client.close()

"""Per-client fixed-window rate limiting.

A client's window opens on its first recorded attempt and resets entirely
``decay_seconds`` later. Fixed windows keep one counter per client, at the cost
of admitting up to twice the quota in a burst that straddles a window boundary.
"""

import logging
import sys
from dataclasses import dataclass

from api_cache.domain.rate_limits import RateLimitPolicy, RateLimitStatus
from api_cache.errors import InvalidRequest
from api_cache.services.counters import CounterStore

UNLIMITED = sys.maxsize

_logger = logging.getLogger(__name__)


@dataclass
class RateLimiter:
    """Counts live calls per client against a shared counter store."""

    counter_store: CounterStore
    policies: dict[str, RateLimitPolicy]
    key_prefix: str = "api-cache:rate-limit"

    def key(self, client_name: str) -> str:
        """Counter key for a client's window."""
        return f"{self.key_prefix}:{client_name}"

    def policy(self, client_name: str) -> RateLimitPolicy:
        """Return the client's policy, falling back to ``default``."""
        policy = self.policies.get(client_name) or self.policies.get("default")
        if policy is None:
            raise InvalidRequest(f"No rate limit policy for client '{client_name}'")
        return policy

    def remaining(self, client_name: str) -> int:
        """Attempts left in the current window."""
        policy = self.policy(client_name)
        if policy.unlimited:
            return UNLIMITED
        attempts = self.counter_store.attempts(self.key(client_name))
        return max(0, policy.max_attempts - attempts)

    def allow(self, client_name: str) -> bool:
        """Return whether a live call may be made now."""
        remaining = self.remaining(client_name)
        allowed = remaining > 0
        if allowed:
            _logger.debug(
                "Rate limit check: client=%s remaining=%s", client_name, remaining
            )
        else:
            _logger.warning(
                "Rate limit exceeded: client=%s available_in=%s max_attempts=%s",
                client_name,
                self.available_in(client_name),
                self.policy(client_name).max_attempts,
            )
        return allowed

    def increment(self, client_name: str, amount: int = 1) -> None:
        """Record ``amount`` live attempts against the current window."""
        if amount < 1:
            raise InvalidRequest(f"Increment amount must be positive, got {amount}")
        policy = self.policy(client_name)
        attempts = self.counter_store.increment(
            self.key(client_name), amount, policy.decay_seconds
        )
        _logger.debug(
            "Rate limit incremented: client=%s amount=%s attempts=%s max_attempts=%s",
            client_name,
            amount,
            attempts,
            policy.max_attempts,
        )

    def available_in(self, client_name: str) -> int:
        """Seconds until the client is admitted again; 0 when not throttled.

        A client throttled without an open window, as with a zero quota, waits
        a full window.
        """
        policy = self.policy(client_name)
        if policy.unlimited:
            return 0
        key = self.key(client_name)
        if self.counter_store.attempts(key) < policy.max_attempts:
            return 0
        return self.counter_store.available_in(key) or policy.decay_seconds

    def clear(self, client_name: str) -> None:
        """Administrative reset of the client's window."""
        before = self.remaining(client_name)
        self.counter_store.clear(self.key(client_name))
        _logger.info(
            "Rate limit cleared: client=%s remaining_before=%s", client_name, before
        )

    def status(self, client_name: str) -> RateLimitStatus:
        """Return a snapshot of the client's window."""
        policy = self.policy(client_name)
        return RateLimitStatus(
            client=client_name,
            attempts=self.counter_store.attempts(self.key(client_name)),
            max_attempts=policy.max_attempts,
            remaining=self.remaining(client_name),
            available_in=self.available_in(client_name),
            decay_seconds=policy.decay_seconds,
        )

"""Rate limiting domain models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitPolicy:
    """Fixed-window quota for one client.

    ``max_attempts`` of ``None`` or below zero means unlimited.
    """

    max_attempts: int | None
    decay_seconds: int

    @property
    def unlimited(self) -> bool:
        return self.max_attempts is None or self.max_attempts < 0


@dataclass(frozen=True)
class RateLimitStatus:
    """Snapshot of a client's current window."""

    client: str
    attempts: int
    max_attempts: int | None
    remaining: int
    available_in: int
    decay_seconds: int

    @property
    def allowed(self) -> bool:
        return self.remaining > 0

"""Request/response envelope shared by live and cached calls."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ApiRequest:
    """What was sent to the upstream API."""

    base_url: str | None = None
    full_url: str | None = None
    method: str | None = None
    attributes: str | None = None
    credits: int | None = None
    cost: float | None = None
    headers: dict[str, object] | None = None
    body: bytes | None = None


@dataclass(frozen=True)
class ApiResult:
    """A response envelope, either fresh from the network or from cache."""

    request: ApiRequest
    status_code: int | None
    headers: dict[str, object]
    body: bytes
    response_time: float | None = None
    params: dict[str, object] = field(default_factory=dict)
    is_cached: bool = False
    cache_key: str | None = None
    cache_write_error: str | None = None

    @property
    def response_size(self) -> int:
        """Byte length of the uncompressed body."""
        return len(self.body)

    @property
    def successful(self) -> bool:
        """Return whether the status code is 2xx."""
        return self.status_code is not None and 200 <= self.status_code < 300

    def text(self, encoding: str = "utf-8") -> str:
        """Decode the body as text."""
        return self.body.decode(encoding, errors="replace")

"""Exception taxonomy for the API cache core."""


class ApiCacheError(Exception):
    """Base class for all API cache errors."""


class InvalidRequest(ApiCacheError, ValueError):
    """Caller supplied input the cache cannot accept. Never retried."""


class UnsupportedParameterType(InvalidRequest):
    """A request parameter holds a value that has no canonical encoding."""

    def __init__(self, path: str, value: object) -> None:
        self.path = path
        self.value_type = type(value).__name__
        super().__init__(
            f"Unsupported parameter type {self.value_type!r} at {path or '<root>'}"
        )


class MaxDepthExceeded(InvalidRequest):
    """Request parameters are nested deeper than allowed."""

    def __init__(self, max_depth: int) -> None:
        self.max_depth = max_depth
        super().__init__(f"Maximum parameter nesting depth of {max_depth} exceeded")


class InvalidIdentifier(InvalidRequest):
    """A client name contains characters outside ``[A-Za-z0-9_-]``."""


class RateLimitExceeded(ApiCacheError):
    """Live call refused because the client's window is exhausted."""

    status_code = 429

    def __init__(
        self, client_name: str, available_in_seconds: int, message: str = ""
    ) -> None:
        self.client_name = client_name
        self.available_in_seconds = available_in_seconds
        super().__init__(
            message
            or f"Rate limit exceeded for client '{client_name}'. "
            f"Available in {available_in_seconds} seconds."
        )


class CompressionFailure(ApiCacheError):
    """The codec could not compress a payload."""


class DecompressionFailure(ApiCacheError):
    """A stored payload could not be decompressed."""


class SerializationFailure(ApiCacheError):
    """A value could not be given a stable byte encoding."""


class CacheWriteFailure(ApiCacheError):
    """A live result was obtained but could not be persisted."""

    def __init__(self, client_name: str, key: str, cause: Exception) -> None:
        self.client_name = client_name
        self.key = key
        super().__init__(f"Failed to store response for {client_name}:{key}: {cause}")

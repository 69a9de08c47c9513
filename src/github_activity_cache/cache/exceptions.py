"""Cache store exceptions."""


class CacheError(Exception):
    """Base exception for cache store errors."""

    pass


class CacheCorruptError(CacheError):
    """Raised when a cache file cannot be read or does not validate."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Unreadable cache file {path}: {reason}")
        self.path = path


class CacheWriteError(CacheError):
    """Raised when persisting the cache fails."""

    pass

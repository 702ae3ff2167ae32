# stashcache/exceptions.py
"""
Exception hierarchy for stashcache.

Construction problems raise immediately. Driver failures are raised by the
drivers and caught at the item/pool boundary, where they disable the cache
instead of reaching the caller.
"""


class CacheError(Exception):
    """Base class for stashcache errors."""

    def __init__(self, message, details=None):
        super().__init__(message)
        self.details = details if details is not None else {}


class ConfigurationError(CacheError):
    """Raised for invalid construction arguments (e.g. an empty driver chain)."""
    pass


class InvalidArgumentError(CacheError):
    """Raised for invalid keys, namespaces, item classes or driver options."""
    pass


class DriverUnavailableError(ConfigurationError):
    """Raised when a driver's underlying library or service is not usable."""
    pass


class BackendError(CacheError):
    """Raised when a storage backend call fails (I/O error, lost connection)."""

    def __init__(self, message, driver=None, details=None):
        super().__init__(message, details=details)
        self.driver = driver

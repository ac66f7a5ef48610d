# errors.py
"""
Exception hierarchy shared by the loader, the search services and the
HTTP layer. Routes in app.py map each class to a status code.
"""


class FundSearchError(Exception):
    """Base class for every error raised by fundsearch."""


class ConfigError(FundSearchError):
    """Invalid environment configuration."""


class CatalogLoadError(FundSearchError):
    """The fund catalog could not be read or indexed; the index can never become healthy."""

    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Failed to load fund catalog {self.path}: {reason}")


class IndexFrozenError(FundSearchError):
    """A build-phase structure was mutated after it was frozen."""


class InvalidQueryError(FundSearchError, ValueError):
    """A search request carried an unsupported value."""

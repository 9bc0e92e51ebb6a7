"""Exception hierarchy for the train watcher."""

from typing import Optional


class WatcherError(Exception):
    """Base class for all watcher errors."""


class ConfigurationError(WatcherError, ValueError):
    """Raised synchronously when watcher options are invalid."""


class NotAFunctionError(WatcherError, TypeError):
    """Raised synchronously when the callback is not callable."""


class FetchError(WatcherError):
    """A cycle's fetch phase failed."""

    def __init__(self, message: str, service: Optional[str] = None, url: Optional[str] = None):
        super().__init__(message)
        self.service = service
        self.url = url

    def __str__(self) -> str:
        message = super().__str__()
        if self.service:
            return f"{self.service}: {message}"
        return message


class NoMatchError(FetchError):
    """Source string did not contain a repository identifier."""


class VersionFormatError(FetchError):
    """Version string is not of the form major.train.patch."""


class PayloadError(FetchError):
    """Version endpoint returned a body of the wrong shape."""

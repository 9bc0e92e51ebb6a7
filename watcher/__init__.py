"""
Train watcher package.

This package contains:
- Version and repository identifier parsing
- Concurrent version fetching for tracked services
- Status reduction (diffs, patches, aggregate train)
- The polling watcher and its cancellation handle
"""

__version__ = "1.0.0"

from watcher.exceptions import (
    ConfigurationError,
    FetchError,
    NoMatchError,
    NotAFunctionError,
    PayloadError,
    VersionFormatError,
    WatcherError,
)
from watcher.watcher_service import VersionWatcher, WatcherState, watch

__all__ = [
    "ConfigurationError",
    "FetchError",
    "NoMatchError",
    "NotAFunctionError",
    "PayloadError",
    "VersionFormatError",
    "VersionWatcher",
    "WatcherError",
    "WatcherState",
    "watch",
]

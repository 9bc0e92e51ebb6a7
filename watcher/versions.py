"""
Version and repository identifier parsing.

Version strings are dotted ``major.train.patch``; the major component is
ignored. Repository identifiers are pulled out of free-form source strings
such as git remotes.
"""

import re
from typing import Optional, Union

from watcher.exceptions import NoMatchError, VersionFormatError
from watcher.models import REPO_PATTERN, VersionPair

VERSION_MATCH = re.compile(r"^\s*(\d+)\.(\d+)\.(\d+)")


def parse_version(version: str) -> VersionPair:
    """
    Parse a version string into its train and patch numbers.

    Args:
        version: Version string, e.g. ``1.81.2``

    Returns:
        VersionPair with integer train and patch

    Raises:
        VersionFormatError: If any of the three components is not numeric
    """
    match = VERSION_MATCH.match(version or "")
    if not match:
        raise VersionFormatError(f"invalid version string {version!r}")
    return VersionPair(train=int(match.group(2)), patch=int(match.group(3)))


def parse_repo(source: str, pattern: Optional[Union[str, re.Pattern]] = None) -> str:
    """
    Extract the repository identifier from a source string.

    Args:
        source: Free-form source location, e.g. ``git://github.com/mozilla/fxa-content-server.git``
        pattern: Identifier regex, defaults to ``REPO_PATTERN``

    Returns:
        The matched identifier, e.g. ``mozilla/fxa-content-server``

    Raises:
        NoMatchError: If the pattern does not occur in the source
    """
    match = re.search(pattern or REPO_PATTERN, source or "")
    if not match:
        raise NoMatchError(f"no repository identifier in source {source!r}")
    return match.group(0)


def make_tag(version: str) -> str:
    return f"v{version}"

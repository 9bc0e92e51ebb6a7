"""
Models for version watching.

This module defines Pydantic models for:
- Tracked service endpoints
- Per-service version records
- Diffs and patch entries
- Aggregate status
- Watcher construction options
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, validator

from watcher import __version__


DEFAULT_RATE = 1000 * 60 * 60
MINIMUM_RATE = DEFAULT_RATE // 2
DEFAULT_USER_AGENT = f"TrainWatcher/{__version__} (https://github.com/train-watcher/train-watcher)"
REPO_PATTERN = r"mozilla/fxa(?:-[a-z]+){0,2}(?:-private)?"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class MatchStrategy(str, Enum):
    """How a service's previous entry is located in the held status."""
    NAME = "name"
    INDEX = "index"


class ServiceEndpoint(BaseModel):
    """A tracked service and the URL that reports its version."""
    name: str = Field(..., min_length=1, description="Service name")
    url: str = Field(..., min_length=1, description="Version endpoint URL")

    class Config:
        """Pydantic configuration."""
        frozen = True


class VersionPair(BaseModel):
    """Train and patch numbers; both are None when no previous entry exists."""
    train: Optional[int] = None
    patch: Optional[int] = None


class ServiceVersionRecord(BaseModel):
    """Version of one service as observed in a cycle (or supplied as seed)."""
    name: Optional[str] = Field(default=None, description="Service name")
    train: int = Field(..., gt=0, description="Release train number")
    patch: int = Field(..., ge=0, description="Patch number within the train")
    tag: Optional[str] = Field(default=None, description="'v' followed by the raw version string")
    commit: Optional[str] = Field(default=None, description="Commit identifier")
    repo: Optional[str] = Field(default=None, description="Repository identifier")
    time: Optional[datetime] = Field(default=None, description="When this train/patch was first seen")

    @property
    def pair(self) -> VersionPair:
        return VersionPair(train=self.train, patch=self.patch)


class Diff(BaseModel):
    """A change in one service's train/patch since the previous cycle."""
    name: str
    current: VersionPair
    previous: VersionPair


class PatchEntry(BaseModel):
    """A service running a patch release of the current train."""
    name: str
    train: int
    patch: int


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Status(BaseModel):
    """Aggregate status across all tracked services."""
    train: int = Field(..., gt=0, description="Highest train observed")
    time: datetime = Field(..., description="When the aggregate last changed")
    diffs: List[Diff] = Field(default_factory=list)
    patches: List[PatchEntry] = Field(default_factory=list)
    versions: List[ServiceVersionRecord] = Field(default_factory=list)

    @validator("time")
    def validate_time(cls, v):
        """Ensure time is after the epoch; naive values are taken as UTC."""
        v = _as_utc(v)
        if v <= EPOCH:
            raise ValueError("time must be after the epoch")
        return v

    @validator("versions")
    def validate_versions(cls, v, values):
        """Ensure no version entry is ahead of the aggregate train."""
        train = values.get("train")
        if train is not None:
            for version in v:
                if version.train > train:
                    raise ValueError(
                        f"version train {version.train} exceeds status train {train}"
                    )
        return v


DEFAULT_ENDPOINTS = [
    ServiceEndpoint(name="content", url="https://accounts.firefox.com/ver.json"),
    ServiceEndpoint(name="auth", url="https://api.accounts.firefox.com/__version__"),
    ServiceEndpoint(name="profile", url="https://profile.accounts.firefox.com/__version__"),
    ServiceEndpoint(name="oauth", url="https://oauth.accounts.firefox.com/__version__"),
]


def default_status() -> Status:
    """Seed status used when the caller supplies none."""
    return Status(
        train=81,
        time=datetime(2017, 3, 3, 23, 12, tzinfo=timezone.utc),
        versions=[
            ServiceVersionRecord(train=81, patch=0),
            ServiceVersionRecord(train=81, patch=2),
            ServiceVersionRecord(train=79, patch=0),
            ServiceVersionRecord(train=81, patch=0),
        ],
    )


class WatcherOptions(BaseModel):
    """Validated construction options for a watcher."""
    rate: int = Field(default=DEFAULT_RATE, description="Cycle interval in milliseconds")
    immediate: bool = Field(default=True, description="Run a forced cycle on start")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent header value")
    endpoints: List[ServiceEndpoint] = Field(default_factory=lambda: list(DEFAULT_ENDPOINTS))
    status: Status = Field(
        default_factory=default_status, validate_default=True, description="Seed status"
    )
    match_by: MatchStrategy = Field(default=MatchStrategy.NAME)
    request_timeout: float = Field(default=30.0, description="Per-request timeout in seconds")
    repo_pattern: str = Field(default=REPO_PATTERN, description="Repository identifier regex")

    class Config:
        """Pydantic configuration."""
        extra = "forbid"

    @validator("rate")
    def validate_rate(cls, v):
        """Ensure cycles are not more frequent than every half hour."""
        if v < MINIMUM_RATE:
            raise ValueError(f"rate must be at least {MINIMUM_RATE}ms")
        return v

    @validator("user_agent")
    def validate_user_agent(cls, v):
        """Ensure user agent is non-empty."""
        if not v or not v.strip():
            raise ValueError("user_agent must be a non-empty string")
        return v

    @validator("request_timeout")
    def validate_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 1 or v > 300:
            raise ValueError("request_timeout must be between 1 and 300 seconds")
        return v

    @validator("repo_pattern")
    def validate_repo_pattern(cls, v):
        """Ensure the pattern compiles."""
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"repo_pattern is not a valid regex: {e}")
        return v

    @validator("endpoints")
    def validate_endpoints(cls, v):
        """Ensure at least one endpoint and unique names."""
        if not v:
            raise ValueError("at least one endpoint is required")
        names = [endpoint.name for endpoint in v]
        if len(set(names)) != len(names):
            raise ValueError("endpoint names must be unique")
        return v

    @validator("status")
    def validate_status(cls, v, values):
        """Ensure one seed entry per endpoint and name unnamed entries by position."""
        endpoints = values.get("endpoints")
        if endpoints is None:
            return v
        if len(v.versions) != len(endpoints):
            raise ValueError(
                f"status must have exactly {len(endpoints)} versions, got {len(v.versions)}"
            )
        versions = [
            version if version.name else version.model_copy(update={"name": endpoint.name})
            for version, endpoint in zip(v.versions, endpoints)
        ]
        return v.model_copy(update={"versions": versions}, deep=True)

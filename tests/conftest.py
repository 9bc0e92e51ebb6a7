"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from watcher.fetcher import VersionFetcher
from watcher.models import DEFAULT_ENDPOINTS, ServiceVersionRecord, Status


COMMIT = "75ca755f94be44c06c55fab8e3fccfedb0e4b59e"
SERVICE_NAMES = ["content", "auth", "profile", "oauth"]
SOURCES = {
    "content": "git://github.com/mozilla/fxa-content-server.git",
    "auth": "git@github.com:mozilla/fxa-auth-server-private.git",
    "profile": "https://github.com/mozilla/fxa-profile-server",
    "oauth": "git://github.com/mozilla/fxa-oauth-server.git",
}
REPOS = {
    "content": "mozilla/fxa-content-server",
    "auth": "mozilla/fxa-auth-server-private",
    "profile": "mozilla/fxa-profile-server",
    "oauth": "mozilla/fxa-oauth-server",
}


def make_status(train: int = 81, time: datetime = None, versions=None) -> Status:
    """Build a seed status; versions are (train, patch) tuples."""
    versions = versions or [(train, 0)] * 4
    return Status(
        train=train,
        time=time or datetime(2017, 3, 3, 23, 12, tzinfo=timezone.utc),
        versions=[
            ServiceVersionRecord(name=name, train=t, patch=p)
            for name, (t, p) in zip(SERVICE_NAMES, versions)
        ],
    )


def make_records(versions) -> List[ServiceVersionRecord]:
    """Build fetched records; versions maps service name to a raw version string."""
    records = []
    for name in SERVICE_NAMES:
        version = versions[name] if isinstance(versions, dict) else versions
        _, train, patch = version.split(".")
        records.append(ServiceVersionRecord(
            name=name,
            train=int(train),
            patch=int(patch),
            tag=f"v{version}",
            commit=COMMIT,
            repo=REPOS[name],
        ))
    return records


def make_transport(payloads: Dict[str, object], seen: list = None) -> httpx.MockTransport:
    """
    Mock transport keyed by URL.

    A dict value is returned as JSON, an int as a bare status code, and an
    exception instance is raised.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        payload = payloads[str(request.url)]
        if isinstance(payload, Exception):
            raise payload
        if isinstance(payload, int):
            return httpx.Response(payload)
        if isinstance(payload, str):
            return httpx.Response(200, text=payload)
        return httpx.Response(200, json=payload)

    return httpx.MockTransport(handler)


def payloads_for(version: str) -> Dict[str, dict]:
    """Every default endpoint reports the same version."""
    return {
        endpoint.url: {
            "version": version,
            "source": SOURCES[endpoint.name],
            "commit": COMMIT,
        }
        for endpoint in DEFAULT_ENDPOINTS
    }


@pytest.fixture
def now():
    """Fixed current time for the status reducer."""
    return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(now):
    """Clock returning the fixed current time."""
    return lambda: now


@pytest.fixture
def seed_status(now):
    """Seed status one minute before the fixed current time."""
    return make_status(train=81, time=now - timedelta(minutes=1))


@pytest.fixture
def mock_fetcher():
    """Create a mock version fetcher for watcher testing."""
    fetcher = AsyncMock(spec=VersionFetcher)
    fetcher.fetch_versions.return_value = make_records("0.81.0")
    return fetcher


@pytest.fixture
def mock_scheduler():
    """Create a mock APScheduler instance; add_job returns a mock job."""
    scheduler = MagicMock()
    scheduler.running = False
    scheduler.add_job.return_value = MagicMock()
    return scheduler


# Factory fixtures, so test modules need not import from conftest
@pytest.fixture
def status_factory():
    return make_status


@pytest.fixture
def records_factory():
    return make_records


@pytest.fixture
def transport_factory():
    return make_transport


@pytest.fixture
def payloads_factory():
    return payloads_for


@pytest.fixture
def repos():
    """Expected repository identifier per service."""
    return dict(REPOS)

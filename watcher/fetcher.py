"""
Concurrent version fetcher for tracked services.

One GET per endpoint is issued over a shared httpx client; the cycle waits
for all of them and either returns every record, in endpoint order, or
raises the first failure.
"""

import asyncio
from typing import List, Optional, Sequence

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from watcher.exceptions import FetchError, PayloadError
from watcher.models import REPO_PATTERN, ServiceEndpoint, ServiceVersionRecord
from watcher.versions import make_tag, parse_repo, parse_version

logger = structlog.get_logger(__name__)


class VersionPayload(BaseModel):
    """Body returned by a version endpoint. Extra fields are ignored."""
    version: str
    source: str
    commit: str


class VersionFetcher:
    """Fetches version records for a fixed list of endpoints."""

    def __init__(
        self,
        endpoints: Sequence[ServiceEndpoint],
        request_timeout: float = 30.0,
        repo_pattern: str = REPO_PATTERN,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            endpoints: Endpoints to fetch, in canonical order
            request_timeout: Per-request timeout in seconds
            repo_pattern: Regex used to extract the repository identifier
            transport: Optional httpx transport (used by tests)
        """
        self.endpoints = list(endpoints)
        self.repo_pattern = repo_pattern
        self.logger = logger.bind(component="version_fetcher")

        self.client_config = {
            "timeout": request_timeout,
            "follow_redirects": True,
        }
        if transport is not None:
            self.client_config["transport"] = transport

    async def fetch_versions(self, user_agent: str) -> List[ServiceVersionRecord]:
        """
        Fetch the version of every endpoint concurrently.

        Args:
            user_agent: Value of the User-Agent header on every request

        Returns:
            One ServiceVersionRecord per endpoint, in endpoint order

        Raises:
            FetchError: If any endpoint fails; no partial results are returned
        """
        headers = {"User-Agent": user_agent, "Accept": "application/json"}

        async with httpx.AsyncClient(headers=headers, **self.client_config) as client:
            tasks = [self._fetch_endpoint(client, endpoint) for endpoint in self.endpoints]
            results = await asyncio.gather(*tasks, return_exceptions=True)

        for result in results:
            if isinstance(result, BaseException):
                raise result

        return results

    async def _fetch_endpoint(
        self, client: httpx.AsyncClient, endpoint: ServiceEndpoint
    ) -> ServiceVersionRecord:
        """Fetch and normalize a single endpoint."""
        try:
            response = await client.get(endpoint.url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            self.logger.warning(
                "Version endpoint returned error status",
                service=endpoint.name,
                url=endpoint.url,
                status_code=e.response.status_code
            )
            raise FetchError(
                f"HTTP {e.response.status_code} from {endpoint.url}",
                service=endpoint.name,
                url=endpoint.url
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.logger.warning(
                "Version endpoint request failed",
                service=endpoint.name,
                url=endpoint.url,
                error=str(e)
            )
            raise FetchError(
                f"request to {endpoint.url} failed: {e!r}",
                service=endpoint.name,
                url=endpoint.url
            ) from e

        try:
            payload = VersionPayload.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise PayloadError(
                f"malformed version payload from {endpoint.url}: {e}",
                service=endpoint.name,
                url=endpoint.url
            ) from e

        return self._build_record(endpoint, payload)

    def _build_record(self, endpoint: ServiceEndpoint, payload: VersionPayload) -> ServiceVersionRecord:
        try:
            pair = parse_version(payload.version)
            repo = parse_repo(payload.source, self.repo_pattern)
        except FetchError as e:
            e.service = endpoint.name
            e.url = endpoint.url
            raise

        try:
            record = ServiceVersionRecord(
                name=endpoint.name,
                train=pair.train,
                patch=pair.patch,
                tag=make_tag(payload.version),
                commit=payload.commit,
                repo=repo
            )
        except ValidationError as e:
            raise PayloadError(
                f"version {payload.version!r} out of range: {e}",
                service=endpoint.name,
                url=endpoint.url
            ) from e
        self.logger.debug(
            "Fetched service version",
            service=endpoint.name,
            tag=record.tag,
            repo=repo
        )
        return record

"""GitHub REST API client for listing and deleting releases."""

import time
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import requests

from release_cleanup.domain.release import Release, RepositoryCoordinate

logger = logging.getLogger(__name__)


class ReleaseListingError(Exception):
    """Raised when the complete list of releases cannot be retrieved."""
    pass


@dataclass(frozen=True)
class HttpRequest:
    """Description of a single API call."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)


def next_link(link_header: Optional[str]) -> Optional[str]:
    """
    Extract the next page URL from a Link header.

    Args:
        link_header: Header value, e.g. '<https://...&page=3>; rel="next", <...>; rel="last"'

    Returns:
        The URL tagged rel="next", or None if there is no next page
    """
    if not link_header:
        return None
    for link in link_header.split(","):
        parts = link.split(";")
        if len(parts) < 2:
            continue
        url = parts[0].strip()
        for param in parts[1:]:
            if param.strip().replace(" ", "") == 'rel="next"':
                return url.strip("<>")
    return None


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; values without an offset are taken as UTC."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError(f"Timestamp is not a string: {value!r}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _require_str(node: Dict[str, Any], key: str) -> str:
    value = node.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"Malformed release entry: {key} must be a non-empty string, got {value!r}")
    return value


def decode_release(node: Dict[str, Any]) -> Release:
    """
    Build a Release from one element of the releases listing.

    Raises:
        ValueError: If a required field is missing or malformed
    """
    if not isinstance(node, dict):
        raise ValueError(f"Release entry is not an object: {node!r}")
    name = node.get("name")
    if name is not None and not isinstance(name, str):
        raise ValueError(f"Malformed release entry: name must be a string, got {name!r}")
    try:
        release_id = int(node["id"])
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed release entry: missing or invalid {e}") from e
    return Release(
        id=release_id,
        url=_require_str(node, "url"),
        tag=_require_str(node, "tag_name"),
        name=name,
        publication=parse_timestamp(node.get("published_at")),
    )


class GitHubReleaseClient:
    """Client for the GitHub REST API releases and git refs endpoints."""

    DEFAULT_API_URL = "https://api.github.com"
    PAGE_SIZE = 100
    REQUEST_TIMEOUT_SECONDS = 60
    DELETION_POLL_INTERVAL_SECONDS = 1
    DELETION_TIMEOUT_SECONDS = 5

    def __init__(
        self,
        coordinate: RepositoryCoordinate,
        api_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize GitHub release client.

        Args:
            coordinate: Repository owner, name and access token
            api_url: API base URL. Defaults to the public GitHub API.
            session: HTTP session reused for every call. A new one is created if None.
            poll_interval: Seconds between existence checks after a deletion
            timeout: Seconds to wait for a deleted resource to disappear
        """
        self.coordinate = coordinate
        self.api_url = (api_url or self.DEFAULT_API_URL).rstrip("/")
        self.session = session or requests.Session()
        self.poll_interval = self.DELETION_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.timeout = self.DELETION_TIMEOUT_SECONDS if timeout is None else timeout
        self.headers = {
            "Authorization": f"token {coordinate.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def __enter__(self) -> "GitHubReleaseClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _repo_url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.coordinate.owner}/{self.coordinate.repository}{path}"

    def _request(self, method: str, url: str) -> HttpRequest:
        return HttpRequest(method=method, url=url, headers=dict(self.headers))

    def tag_url(self, release: Release) -> str:
        return self._repo_url(f"/git/refs/tags/{requests.utils.quote(release.tag, safe='/')}")

    def send(self, request: HttpRequest) -> requests.Response:
        """Execute a request on the shared session."""
        logger.debug(f"{request.method} {request.url}")
        return self.session.request(
            request.method,
            request.url,
            headers=request.headers,
            timeout=self.REQUEST_TIMEOUT_SECONDS,
        )

    def fetch_page(self, url: str) -> tuple[List[Release], Optional[str]]:
        """
        Fetch one page of releases.

        Args:
            url: Absolute URL of the page

        Returns:
            Tuple of (releases on the page, URL of the next page or None)

        Raises:
            ReleaseListingError: If the request fails or the page cannot be decoded
        """
        try:
            response = self.send(self._request("GET", url))
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as e:
            raise ReleaseListingError(f"Could not fetch releases from {url}: {e}") from e
        except ValueError as e:
            raise ReleaseListingError(f"Invalid JSON in releases page {url}: {e}") from e

        if not isinstance(body, list):
            raise ReleaseListingError(f"Expected a list of releases from {url}, got {type(body).__name__}")

        try:
            releases = [decode_release(node) for node in body]
        except ValueError as e:
            raise ReleaseListingError(f"Could not decode releases from {url}: {e}") from e

        return releases, next_link(response.headers.get("Link"))

    def list(self) -> List[Release]:
        """
        Retrieve every release of the repository, following pagination.

        Raises:
            ReleaseListingError: If any page cannot be retrieved
        """
        releases: List[Release] = []
        url: Optional[str] = self._repo_url(f"/releases?per_page={self.PAGE_SIZE}")
        page = 0
        while url:
            page += 1
            page_releases, url = self.fetch_page(url)
            releases.extend(page_releases)
            logger.info(f"Fetched page {page} ({len(page_releases)} releases, {len(releases)} total)")
        return releases

    def _delete(self, url: str, what: str) -> None:
        response = self.send(self._request("DELETE", url))
        if not 200 <= response.status_code < 300:
            logger.warning(
                f"Unexpected status {response.status_code} when deleting {what}: {response.text[:200]}"
            )

    def delete(self, release: Release) -> None:
        """Delete the release object. Non-success statuses are logged, not raised."""
        self._delete(release.url, f"release {release.id}")

    def delete_tag(self, release: Release) -> None:
        """Delete the tag reference of the release. Non-success statuses are logged, not raised."""
        self._delete(self.tag_url(release), f"tag {release.tag}")

    def _wait_until_gone(self, url: str) -> bool:
        waited = 0.0
        while True:
            try:
                response = self.send(self._request("GET", url))
            except requests.exceptions.RequestException as e:
                logger.warning(f"Could not check whether {url} was deleted: {e}")
                return False
            if response.status_code == 404:
                return True
            if waited >= self.timeout or self.poll_interval <= 0:
                return False
            time.sleep(self.poll_interval)
            waited += self.poll_interval

    def wait_for_deletion(self, release: Release) -> bool:
        """
        Poll the release and its tag until both are reported as not found.

        Returns:
            True if both resources disappeared before the timeout
        """
        release_gone = self._wait_until_gone(release.url)
        if not release_gone:
            logger.warning(f"Release {release.id} still exists after {self.timeout}s")
        tag_gone = self._wait_until_gone(self.tag_url(release))
        if not tag_gone:
            logger.warning(f"Tag {release.tag} still exists after {self.timeout}s")
        return release_gone and tag_gone

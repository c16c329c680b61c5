"""
Async GitHub Client for release-publisher

This module provides asynchronous access to the GitHub releases API and to
release asset downloads using aiohttp, with a single pooled session per run.
"""

import asyncio
import importlib.metadata
import json
from typing import Any, Dict, List, Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout, TCPConnector

from release_publisher.constants import (
    APP_NAME,
    DEFAULT_JSON_INDENT,
    DEFAULT_MAX_CONCURRENT_UPLOADS,
    DEFAULT_REQUEST_TIMEOUT,
    GITHUB_ACCEPT_HEADER,
    GITHUB_API_VERSION,
    HTTP_STATUS_OK,
)
from release_publisher.exceptions import (
    APIRequestError,
    APIResponseError,
    AssetDownloadError,
)
from release_publisher.log_utils import logger

from .interfaces import Asset, RawRelease

_USER_AGENT_CACHE: Optional[str] = None


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `release-publisher/{version}`, where `{version}` is the installed package version or `unknown`.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version(APP_NAME)
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"
        _USER_AGENT_CACHE = f"{APP_NAME}/{app_version}"

    return _USER_AGENT_CACHE


def parse_release(item: Dict[str, Any]) -> RawRelease:
    """
    Convert one release object from the GitHub API into a RawRelease.

    Malformed assets are skipped with a warning; the tag name has already been
    validated by the caller.
    """
    tag_name = item["tag_name"]
    assets: List[Asset] = []
    assets_data = item.get("assets") or []
    if not isinstance(assets_data, list):
        logger.warning(
            "Ignoring assets for release %s due to invalid assets type %s",
            tag_name,
            type(assets_data).__name__,
        )
        assets_data = []

    for asset in assets_data:
        if not isinstance(asset, dict):
            logger.warning(
                "Skipping malformed asset in release %s: expected dict, got %s",
                tag_name,
                type(asset).__name__,
            )
            continue
        name = asset.get("name")
        url = asset.get("browser_download_url")
        if not isinstance(name, str) or not name or not isinstance(url, str):
            logger.warning("Skipping asset with invalid name or URL in %s", tag_name)
            continue
        size = asset.get("size")
        assets.append(
            Asset(
                name=name,
                browser_download_url=url,
                size=size if isinstance(size, int) else None,
                content_type=asset.get("content_type"),
            )
        )

    published_at = item.get("published_at")
    return RawRelease(
        tag_name=tag_name,
        published_at=published_at if isinstance(published_at, str) else None,
        prerelease=bool(item.get("prerelease", False)),
        assets=tuple(assets),
    )


def _has_tag_name(item: Any) -> bool:
    return (
        isinstance(item, dict)
        and isinstance(item.get("tag_name"), str)
        and bool(item["tag_name"])
    )


class AsyncGitHubClient:
    """
    Asynchronous GitHub client using aiohttp.

    Provides async methods for:
    - Fetching the release list of a repository
    - Fetching the tag name of the latest release
    - Downloading release assets (redirects followed)

    Example:
        async with AsyncGitHubClient(github_token) as client:
            releases = await client.get_releases(config.releases_url)
    """

    def __init__(
        self,
        github_token: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT_UPLOADS,
    ) -> None:
        """
        Initialize the async GitHub client.

        Parameters:
            github_token (Optional[str]): Token sent as a bearer credential on every request.
            timeout (float): Total timeout in seconds for GitHub API requests. Asset
                downloads have no total cap; it bounds connecting and each read instead.
            max_concurrent (int): Maximum concurrent asset downloads.
        """
        self.github_token = github_token
        self.timeout = ClientTimeout(total=timeout)
        self.download_timeout = ClientTimeout(
            total=None, sock_connect=timeout, sock_read=timeout
        )
        self.max_concurrent = max(1, int(max_concurrent))
        self._session: Optional[ClientSession] = None
        self._semaphore = asyncio.Semaphore(self.max_concurrent)

    async def __aenter__(self) -> "AsyncGitHubClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _ensure_session(self) -> ClientSession:
        """
        Ensure a session exists, creating one if needed.

        Returns:
            ClientSession: The active aiohttp session.
        """
        if self._session is None or self._session.closed:
            connector = TCPConnector(
                limit_per_host=self.max_concurrent,
                enable_cleanup_closed=True,
            )
            self._session = ClientSession(
                connector=connector,
                timeout=self.timeout,
                headers=self._get_default_headers(),
            )
        return self._session

    def _get_default_headers(self) -> Dict[str, str]:
        """
        Build default HTTP headers for GitHub requests.

        Includes Accept, GitHub API version and User-Agent headers, and a bearer
        Authorization header when a token is configured.
        """
        headers = {
            "Accept": GITHUB_ACCEPT_HEADER,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": get_user_agent(),
        }
        if self.github_token:
            headers["Authorization"] = f"Bearer {self.github_token}"
        return headers

    async def close(self) -> None:
        """Close the client session and release resources."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def get_releases(self, url: str) -> List[RawRelease]:
        """
        Fetch the full release list of a repository.

        Parameters:
            url (str): GitHub API releases URL.

        Returns:
            List[RawRelease]: Releases in the order the API listed them.

        Raises:
            APIResponseError: On a non-200 status, a payload that is not a JSON
                array, or any element without a tag_name.
            APIRequestError: If the request itself fails.
        """
        session = await self._ensure_session()
        try:
            async with session.get(url) as response:
                if response.status != HTTP_STATUS_OK:
                    raise APIResponseError(
                        "Unexpected response from GitHub API",
                        endpoint=url,
                        status_code=response.status,
                        details=f"HTTP {response.status}",
                    )
                data = await response.json()
        except (aiohttp.ContentTypeError, ValueError) as e:
            raise APIResponseError(
                "GitHub API returned invalid JSON", endpoint=url, details=str(e)
            ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Unable to request GitHub API data from {url}.")
            raise APIRequestError(
                "Unable to request GitHub API data",
                endpoint=url,
                details=str(e) or type(e).__name__,
            ) from e

        logger.debug(
            "Response from %s:\n%s", url, json.dumps(data, indent=DEFAULT_JSON_INDENT)
        )

        if not isinstance(data, list) or not all(_has_tag_name(d) for d in data):
            raise APIResponseError(
                "Unexpected response from GitHub API",
                endpoint=url,
                status_code=HTTP_STATUS_OK,
                details="expected an array of releases that all carry a tag_name",
            )

        releases = [parse_release(item) for item in data]
        logger.info(f"Fetched {len(releases)} releases from {url}")
        return releases

    async def get_latest_tag_name(self, url: str) -> Optional[str]:
        """
        Fetch the tag name of the release GitHub marks as latest.

        This lookup is best-effort: any failure is logged and None is returned
        so the caller can fall back to its own ordering.
        """
        session = await self._ensure_session()
        try:
            async with session.get(url) as response:
                if response.status != HTTP_STATUS_OK:
                    logger.error(
                        f"Response for latest request unexpected: HTTP {response.status}"
                    )
                    return None
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"Latest release request to {url} failed: {e}")
            return None

        if _has_tag_name(data):
            return data["tag_name"]
        logger.error(
            "Response for latest request unexpected:\n%s",
            json.dumps(data, indent=DEFAULT_JSON_INDENT),
        )
        return None

    async def fetch_asset(self, url: str) -> bytes:
        """
        Download a release asset into memory, following redirects.

        Raises:
            AssetDownloadError: On a non-200 status or a transport failure.
        """
        session = await self._ensure_session()
        async with self._semaphore:
            try:
                async with session.get(
                    url,
                    allow_redirects=True,
                    headers={"Accept": "application/octet-stream"},
                    timeout=self.download_timeout,
                ) as response:
                    if response.status != HTTP_STATUS_OK:
                        raise AssetDownloadError(
                            f"Unexpected response for URL: {url} status: {response.status}",
                            url=url,
                            status_code=response.status,
                        )
                    body = await response.read()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise AssetDownloadError(
                    f"Download failed for {url}",
                    url=url,
                    details=str(e) or type(e).__name__,
                ) from e

        logger.debug(f"Downloaded {url} ({len(body)} bytes)")
        return body

"""
Release publisher.

Copies release assets from GitHub into the storage bucket and uploads the
manifest and latest descriptor files.
"""

import asyncio
import functools
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from release_publisher.constants import ASSET_CONTENT_TYPES, MIME_JSON
from release_publisher.exceptions import AssetDownloadError, StorageError
from release_publisher.log_utils import logger

from .async_client import AsyncGitHubClient
from .interfaces import AssetRef, ResolvedRelease
from .storage import S3Storage


@dataclass
class PublishSummary:
    """Outcome of republishing release assets."""

    uploaded: List[str] = field(default_factory=list)
    """Object keys written to the bucket"""

    skipped: List[str] = field(default_factory=list)
    """Source URLs that could not be downloaded"""

    planned: List[str] = field(default_factory=list)
    """Object keys a dry run would have written"""


class ReleasePublisher:
    """
    Uploads release files to object storage.

    Blocking S3 calls run in the default executor so asset downloads can proceed
    while uploads are in flight. A dry run neither downloads nor uploads.
    """

    def __init__(
        self,
        storage: S3Storage,
        github_client: AsyncGitHubClient,
        dry_run: bool = False,
    ):
        self.storage = storage
        self.github_client = github_client
        self.dry_run = dry_run

    async def _in_executor(self, func: Callable[..., Any], *args: Any) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, functools.partial(func, *args))

    async def upload_file(self, path: Path, content_type: str = MIME_JSON) -> bool:
        """
        Upload a local file under its own name.

        Failures are logged and reported through the return value only.

        Returns:
            bool: True if the upload succeeded (or was skipped for a dry run).
        """
        if self.dry_run:
            logger.info(f"[dry-run] Would upload {path.name}")
            return True
        try:
            await self._in_executor(
                self.storage.put_file, path, path.name, content_type
            )
        except StorageError as exc:
            logger.error(f"Upload of {path.name} failed: {exc}")
            return False
        logger.info(f"Uploaded {path.name}")
        return True

    async def upload_manifest_and_latest(
        self, manifest_path: Path, latest_path: Path
    ) -> bool:
        """Upload both descriptor files; returns True only if both succeeded."""
        manifest_ok = await self.upload_file(manifest_path)
        latest_ok = await self.upload_file(latest_path)
        return manifest_ok and latest_ok

    async def republish_asset(
        self, folder: str, asset: AssetRef, content_type: Optional[str]
    ) -> Optional[str]:
        """
        Download one asset from GitHub and store it at `{folder}/{asset.name}`.

        Returns:
            Optional[str]: The object key, or None when the download failed.

        Raises:
            StorageError: If the upload fails.
        """
        key = f"{folder}/{asset.name}"
        if self.dry_run:
            logger.info(f"[dry-run] Would copy {asset.download_url} to {key}")
            return key
        try:
            body = await self.github_client.fetch_asset(asset.download_url)
        except AssetDownloadError as exc:
            logger.error(str(exc))
            return None
        await self._in_executor(self.storage.put_object, key, body, content_type)
        logger.info(f"Uploaded {key}")
        return key

    async def republish_assets(
        self, releases: Sequence[ResolvedRelease]
    ) -> PublishSummary:
        """
        Republish the jar, configuration and jvmRun assets of every release.

        All transfers are started together and awaited before returning. The
        first failure cancels the transfers still in flight, waits for them to
        wind down and is re-raised.

        Raises:
            StorageError: If any upload fails.
        """
        summary = PublishSummary()
        jobs = [
            (release.name, ref, ASSET_CONTENT_TYPES.get(key))
            for release in releases
            for key, ref in release.asset_refs()
        ]
        tasks = [
            asyncio.ensure_future(self.republish_asset(folder, ref, content_type))
            for folder, ref, content_type in jobs
        ]
        if not tasks:
            return summary

        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        published = summary.planned if self.dry_run else summary.uploaded
        for (_folder, ref, _content_type), key in zip(jobs, results):
            if key is None:
                summary.skipped.append(ref.download_url)
            else:
                published.append(key)
        return summary

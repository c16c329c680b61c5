"""
Publishing Pipeline Orchestrator

This module sequences one publishing run: fetch the release list, select and
transform releases, write the descriptor files, upload everything and notify.
"""

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from release_publisher.config import PublisherConfig
from release_publisher.constants import LATEST_FILE_NAME
from release_publisher.exceptions import LatestReleaseError, StorageError
from release_publisher.log_utils import logger
from release_publisher.notifications import send_update_notification

from .async_client import AsyncGitHubClient
from .interfaces import PublishableRelease, ResolvedRelease
from .manifest import write_latest, write_manifest
from .publisher import PublishSummary, ReleasePublisher
from .selection import build_publishable_releases, select_latest
from .storage import S3Storage


@dataclass
class PipelineResult:
    """What a publishing run produced."""

    releases: List[PublishableRelease] = field(default_factory=list)
    manifest_path: Optional[Path] = None
    latest: Optional[ResolvedRelease] = None
    latest_path: Optional[Path] = None
    descriptors_uploaded: bool = False
    summary: PublishSummary = field(default_factory=PublishSummary)
    upload_error: Optional[StorageError] = None
    notified: bool = False


class PublishOrchestrator:
    """
    Orchestrates a release publishing run.

    Release list failures propagate to the caller before anything is written or
    uploaded. Everything after that point is reported through PipelineResult,
    and the notification is attempted whatever the upload outcome.
    """

    def __init__(
        self,
        config: PublisherConfig,
        github_client: AsyncGitHubClient,
        storage: S3Storage,
        dry_run: bool = False,
        notify: bool = True,
    ):
        self.config = config
        self.github_client = github_client
        self.publisher = ReleasePublisher(storage, github_client, dry_run=dry_run)
        self.dry_run = dry_run
        self.notify = notify

    async def run(self) -> PipelineResult:
        """
        Run the pipeline once.

        Raises:
            APIResponseError: If GitHub answers the release list request with a
                non-200 status or a malformed payload.
            APIRequestError: If the release list request fails.
        """
        start_time = time.time()
        logger.info(f"Publishing releases of {self.config.repository}")

        raw_releases = await self.github_client.get_releases(self.config.releases_url)
        resolved, publishable = build_publishable_releases(
            raw_releases,
            self.config.s3_base_url,
            disqualifiers=self.config.filter_tag_strings,
            patterns=self.config.compiled_asset_patterns(),
        )
        result = PipelineResult(releases=publishable)
        if not publishable:
            logger.error("No complete releases left after filtering.")

        output_dir = self.config.output_dir
        result.manifest_path = await write_manifest(publishable, output_dir)

        latest_tag = await self.github_client.get_latest_tag_name(
            self.config.latest_release_url
        )
        try:
            latest = select_latest(publishable, latest_tag)
        except LatestReleaseError as e:
            logger.error(str(e))
            self._remove_stale_latest(output_dir)
        else:
            result.latest = latest
            result.latest_path = await write_latest(latest, output_dir)
            result.descriptors_uploaded = (
                await self.publisher.upload_manifest_and_latest(
                    result.manifest_path, result.latest_path
                )
            )

        try:
            result.summary = await self.publisher.republish_assets(resolved)
        except StorageError as e:
            logger.error(f"Asset upload failed: {e}")
            result.upload_error = e

        if self.notify:
            loop = asyncio.get_running_loop()
            result.notified = await loop.run_in_executor(
                None, send_update_notification, self.config, result.manifest_path
            )

        self._log_summary(result, start_time)
        return result

    def _remove_stale_latest(self, output_dir: Path) -> None:
        stale = output_dir / LATEST_FILE_NAME
        if stale.exists():
            try:
                stale.unlink()
                logger.debug(f"Removed stale {stale}")
            except OSError as e:
                logger.warning(f"Could not remove stale {stale}: {e}")

    def _log_summary(self, result: PipelineResult, start_time: float) -> None:
        elapsed = time.time() - start_time
        if self.dry_run:
            logger.info(
                f"[dry-run] Selected {len(result.releases)} releases, "
                f"{len(result.summary.planned)} assets would be copied in {elapsed:.1f}s"
            )
        else:
            logger.info(
                f"Published {len(result.releases)} releases, "
                f"{len(result.summary.uploaded)} assets uploaded, "
                f"{len(result.summary.skipped)} skipped in {elapsed:.1f}s"
            )
        if result.latest is not None:
            logger.info(f"Latest release: {result.latest.name}")

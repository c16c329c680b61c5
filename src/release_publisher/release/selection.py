"""
Release selection and transformation.

Pure functions that turn the raw GitHub release list into the records written
to the manifest: tag filtering, ordering, asset resolution, URL rewriting and
latest-release selection. Nothing here performs I/O.
"""

import re
from dataclasses import replace
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from release_publisher.constants import (
    CONFIGURATION_ASSET_KEY,
    DEFAULT_ASSET_PATTERNS,
    FILTER_TAG_STRINGS,
    JAR_ASSET_KEY,
    JVM_RUN_ASSET_KEY,
)
from release_publisher.exceptions import LatestReleaseError
from release_publisher.log_utils import logger

from .interfaces import (
    Asset,
    AssetRef,
    PublishableRelease,
    RawRelease,
    ResolvedRelease,
)

PatternLike = Union[str, "re.Pattern[str]"]


def is_final_release(
    release: RawRelease, disqualifiers: Sequence[str] = FILTER_TAG_STRINGS
) -> bool:
    """Return True unless the tag contains one of the disqualifying substrings."""
    return not any(sub in release.tag_name for sub in disqualifiers)


def filter_final_releases(
    releases: Iterable[RawRelease],
    disqualifiers: Sequence[str] = FILTER_TAG_STRINGS,
) -> List[RawRelease]:
    """
    Drop prerelease, beta and alpha tags.

    Matching is a case-sensitive substring test on the tag name. Input order is
    preserved.
    """
    kept = []
    for release in releases:
        if is_final_release(release, disqualifiers):
            kept.append(release)
        else:
            logger.debug(f"Filtered non-final release {release.tag_name}")
    return kept


def sort_releases_by_publish_date(releases: Iterable[RawRelease]) -> List[RawRelease]:
    """
    Order releases newest first by their published_at timestamp.

    GitHub timestamps are fixed-width ISO 8601 strings, so comparing them as
    strings is chronological. Releases without a timestamp go last. The sort is
    stable.
    """
    releases = list(releases)
    dated = [r for r in releases if r.published_at]
    undated = [r for r in releases if not r.published_at]
    dated.sort(key=lambda r: r.published_at or "", reverse=True)
    return dated + undated


def find_asset(assets: Iterable[Asset], pattern: PatternLike) -> Optional[AssetRef]:
    """
    Return the first asset, in listing order, whose name matches `pattern`.

    The pattern is applied with re.search, so anchors in the pattern decide
    whether it must match at the start or end of the name.
    """
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    for asset in assets:
        if regex.search(asset.name):
            return AssetRef(name=asset.name, download_url=asset.browser_download_url)
    return None


def resolve_release(
    release: RawRelease,
    patterns: Optional[Mapping[str, PatternLike]] = None,
) -> ResolvedRelease:
    """
    Locate the jar, configuration and jvmRun assets of a release.

    The tag name is used as the release name since release titles may contain
    spaces.
    """
    patterns = patterns or DEFAULT_ASSET_PATTERNS
    return ResolvedRelease(
        name=release.tag_name,
        jar=find_asset(release.assets, patterns[JAR_ASSET_KEY]),
        configuration=find_asset(release.assets, patterns[CONFIGURATION_ASSET_KEY]),
        jvm_run=find_asset(release.assets, patterns[JVM_RUN_ASSET_KEY]),
    )


def complete_releases(releases: Iterable[ResolvedRelease]) -> List[ResolvedRelease]:
    """Keep only releases for which all three assets were found."""
    complete = []
    for release in releases:
        if release.is_complete:
            complete.append(release)
        else:
            missing = [
                key
                for key, ref in (
                    (JAR_ASSET_KEY, release.jar),
                    (CONFIGURATION_ASSET_KEY, release.configuration),
                    (JVM_RUN_ASSET_KEY, release.jvm_run),
                )
                if ref is None
            ]
            logger.info(
                f"Skipping release {release.name}: missing {', '.join(missing)}"
            )
    return complete


def rewrite_download_urls(
    release: ResolvedRelease, base_url: str
) -> PublishableRelease:
    """
    Point every asset URL of a complete release at the storage bucket.

    Each URL becomes `{base_url}{release.name}/{asset.name}`. A new object is
    returned; `release` is left untouched.

    Raises:
        ValueError: If the release is not complete.
    """
    if not release.is_complete:
        raise ValueError(f"Release {release.name} is missing required assets")

    folder_url = f"{base_url}{release.name}/"

    rewritten = {
        key: replace(ref, download_url=folder_url + ref.name)
        for key, ref in release.asset_refs()
    }
    return PublishableRelease(
        name=release.name,
        jar=rewritten[JAR_ASSET_KEY],
        configuration=rewritten[CONFIGURATION_ASSET_KEY],
        jvm_run=rewritten[JVM_RUN_ASSET_KEY],
    )


def select_latest(
    releases: Sequence[ResolvedRelease], latest_tag: Optional[str]
) -> ResolvedRelease:
    """
    Pick the release to advertise as latest.

    The release named `latest_tag` wins when present. Otherwise the first
    element is used, which relies on `releases` being sorted newest first.

    Raises:
        LatestReleaseError: If `releases` is empty.
    """
    if latest_tag:
        for release in releases:
            if release.name == latest_tag:
                return release
        logger.error(
            f"Could not find latest release version tag in releases {latest_tag}."
        )

    if not releases:
        raise LatestReleaseError(
            "All releases were filtered, or not found in response. "
            "Unable to find latest release version."
        )
    return releases[0]


def build_publishable_releases(
    raw_releases: Iterable[RawRelease],
    base_url: str,
    disqualifiers: Sequence[str] = FILTER_TAG_STRINGS,
    patterns: Optional[Mapping[str, PatternLike]] = None,
) -> Tuple[List[ResolvedRelease], List[PublishableRelease]]:
    """
    Run filter, sort, resolve and rewrite over a raw release list.

    Returns:
        tuple: (resolved, publishable) lists of equal length and order.
            `resolved` keeps the GitHub URLs needed to fetch the assets,
            `publishable` carries the storage URLs written to the manifest.
    """
    finals = filter_final_releases(raw_releases, disqualifiers)
    ordered = sort_releases_by_publish_date(finals)
    resolved = complete_releases(resolve_release(r, patterns) for r in ordered)
    publishable = [rewrite_download_urls(r, base_url) for r in resolved]
    return resolved, publishable

"""
Manifest and latest descriptor files.

Both files are pretty-printed JSON with two-space indentation: the manifest is
an array of every publishable release, latest is a single release object.
"""

import json
from pathlib import Path
from typing import Any, Sequence

import aiofiles  # type: ignore[import-untyped]

from release_publisher.constants import (
    DEFAULT_JSON_INDENT,
    LATEST_FILE_NAME,
    MANIFEST_FILE_NAME,
)
from release_publisher.log_utils import logger

from .interfaces import ResolvedRelease


def render_json(data: Any) -> str:
    return json.dumps(data, indent=DEFAULT_JSON_INDENT)


async def _write_text(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(text)
    return path


async def write_manifest(
    releases: Sequence[ResolvedRelease], output_dir: Path
) -> Path:
    """Write manifest.json with every release, in the given order."""
    path = await _write_text(
        output_dir / MANIFEST_FILE_NAME,
        render_json([release.to_dict() for release in releases]),
    )
    logger.info(f"Wrote {len(releases)} releases to {path}")
    return path


async def write_latest(release: ResolvedRelease, output_dir: Path) -> Path:
    """Write latest.json describing a single release."""
    path = await _write_text(
        output_dir / LATEST_FILE_NAME, render_json(release.to_dict())
    )
    logger.info(f"Wrote latest release {release.name} to {path}")
    return path

"""
Release data structures.

RawRelease and Asset mirror what the GitHub API returns. ResolvedRelease keeps
only the three assets a connector release ships, and PublishableRelease is the
same record with download URLs pointing at object storage. All of them are
frozen: a transformation always returns a new instance.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

from release_publisher.constants import (
    CONFIGURATION_ASSET_KEY,
    JAR_ASSET_KEY,
    JVM_RUN_ASSET_KEY,
)


@dataclass(frozen=True)
class Asset:
    """A downloadable file attached to a GitHub release."""

    name: str
    """The filename of the asset"""

    browser_download_url: str
    """URL GitHub serves the file from"""

    size: Optional[int] = None
    """File size in bytes, when reported"""

    content_type: Optional[str] = None
    """MIME type reported by GitHub"""


@dataclass(frozen=True)
class RawRelease:
    """A release exactly as listed by the GitHub API."""

    tag_name: str
    """The release tag (e.g., 'v1.2.3')"""

    published_at: Optional[str] = None
    """ISO 8601 timestamp when the release was published"""

    prerelease: bool = False
    """GitHub's own prerelease flag; tag filtering does not rely on it"""

    assets: Tuple[Asset, ...] = field(default_factory=tuple)
    """Assets in the order GitHub lists them"""


@dataclass(frozen=True)
class AssetRef:
    """Name and download location of one published file."""

    name: str
    download_url: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "download_url": self.download_url}


@dataclass(frozen=True)
class ResolvedRelease:
    """
    A release reduced to its jar, configuration and jvmRun assets.

    Any of the three may be missing; only complete releases are published.
    """

    name: str
    jar: Optional[AssetRef] = None
    configuration: Optional[AssetRef] = None
    jvm_run: Optional[AssetRef] = None

    @property
    def is_complete(self) -> bool:
        return (
            self.jar is not None
            and self.configuration is not None
            and self.jvm_run is not None
        )

    def asset_refs(self) -> Iterator[Tuple[str, AssetRef]]:
        """Yield (manifest key, asset) for every resolved asset."""
        for key, ref in (
            (JAR_ASSET_KEY, self.jar),
            (CONFIGURATION_ASSET_KEY, self.configuration),
            (JVM_RUN_ASSET_KEY, self.jvm_run),
        ):
            if ref is not None:
                yield key, ref

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the manifest field names."""
        data: Dict[str, Any] = {"name": self.name}
        for key, ref in self.asset_refs():
            data[key] = ref.to_dict()
        return data


@dataclass(frozen=True)
class PublishableRelease(ResolvedRelease):
    """A complete release whose URLs point at the storage bucket."""

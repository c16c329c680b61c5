"""
release-publisher Release Subsystem

Core Components:
- interfaces: Release and asset data structures
- async_client: GitHub releases API and asset downloads
- selection: Filtering, ordering, asset resolution and URL rewriting
- manifest: manifest.json / latest.json writers
- storage: S3 object storage access
- publisher: Asset republishing and descriptor uploads
- orchestrator: Publishing pipeline coordination
"""

from .async_client import AsyncGitHubClient
from .interfaces import (
    Asset,
    AssetRef,
    PublishableRelease,
    RawRelease,
    ResolvedRelease,
)
from .orchestrator import PipelineResult, PublishOrchestrator
from .publisher import PublishSummary, ReleasePublisher
from .storage import S3Storage

__all__ = [
    # Interfaces
    "Asset",
    "AssetRef",
    "RawRelease",
    "ResolvedRelease",
    "PublishableRelease",
    # Clients
    "AsyncGitHubClient",
    "S3Storage",
    # Publishing
    "ReleasePublisher",
    "PublishSummary",
    # Orchestration
    "PublishOrchestrator",
    "PipelineResult",
]

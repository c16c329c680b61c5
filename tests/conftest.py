from pathlib import Path
from unittest.mock import AsyncMock, Mock

import aiohttp
import platformdirs
import pytest
import requests

from release_publisher.config import ENV_KEYS

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)

_ASYNC_NETWORK_BLOCK_MSG = (
    "Async network access is blocked during tests. Mock aiohttp.ClientSession."
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


async def _async_block_network(*_args, **_kwargs):
    """
    Prevent async network calls during tests by raising a RuntimeError.
    """
    raise RuntimeError(_ASYNC_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """Register the markers used across the suite."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an asyncio test (auto-detected)"
    )
    config.addinivalue_line("markers", "unit: fast tests of a single module")
    config.addinivalue_line(
        "markers", "integration: tests that run the whole publishing pipeline"
    )


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Remove publisher environment variables and point platformdirs at a temp directory.

    Keeps a developer's real configuration file and credentials out of the tests.
    """
    base = tmp_path_factory.mktemp("release-publisher")
    config_dir = base / "config"
    config_dir.mkdir(parents=True, exist_ok=True)

    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("RELEASE_PUBLISHER_CONFIG", raising=False)

    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.post = _block_network
    requests.put = _block_network
    requests.Session.request = _block_network

    aiohttp.request = _async_block_network
    aiohttp.ClientSession.request = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.get = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.post = _async_block_network  # type: ignore[assignment]


# =============================================================================
# Shared Fixtures
# =============================================================================


def make_asset(name, url=None):
    """Build one GitHub API asset object."""
    return {
        "name": name,
        "browser_download_url": url
        or f"https://github.com/acme/connector/releases/download/{name}",
        "size": 1024,
        "content_type": "application/octet-stream",
    }


def make_release(tag, published_at, asset_names):
    """Build one GitHub API release object."""
    return {
        "tag_name": tag,
        "published_at": published_at,
        "prerelease": False,
        "assets": [make_asset(name) for name in asset_names],
    }


COMPLETE_ASSETS = [
    "connector-1.0.0-full.jar",
    "ExampleConnectorConfig.json",
    "jvmrun",
]


@pytest.fixture
def complete_assets():
    return list(COMPLETE_ASSETS)


@pytest.fixture
def release_factory():
    """Return the helper that builds GitHub API release objects."""
    return make_release


@pytest.fixture
def sample_release_data():
    """Three releases as the GitHub API lists them: a beta and two finals."""
    return [
        make_release(
            "v1.1.0-beta",
            "2024-03-01T10:00:00Z",
            ["connector-1.1.0-beta.jar", "ExampleConnectorConfig.json", "jvmrun"],
        ),
        make_release(
            "v1.0.0",
            "2024-02-01T10:00:00Z",
            ["connector-1.0.0-full.jar", "ExampleConnectorConfig.json", "jvmrun"],
        ),
        make_release(
            "v0.9.0",
            "2024-01-01T10:00:00Z",
            ["connector-0.9.0-full.jar", "ExampleConnectorConfig.json", "jvmrun"],
        ),
    ]


@pytest.fixture
def base_env():
    """Minimal environment that satisfies every required setting."""
    return {
        "TARGET_BUCKET": "connector-bucket",
        "S3_BASE_URL": "https://connector-bucket.s3.amazonaws.com/",
        "GITHUB_REPOSITORY": "acme/connector",
        "GITHUB_REPOSITORY_OWNER": "acme",
        "GITHUB_TOKEN": "ghp_test",
        "SENDGRID_API_KEY": "SG.test",
        "SENDGRID_TARGET_LIST": '["ops@example.com", "dev@example.com"]',
    }


@pytest.fixture
def publisher_config(base_env, tmp_path):
    """A PublisherConfig writing its files into tmp_path."""
    from release_publisher.config import load_config

    return load_config(environ=base_env, overrides={"OUTPUT_DIR": tmp_path})


@pytest.fixture
def mock_async_response():
    """
    Provide a factory for mocked aiohttp responses usable as `async with session.get(...)`.
    """

    def _create_response(status=200, json_data=None, body=b"", json_error=None):
        response = AsyncMock()
        response.status = status
        response.headers = {}
        if json_error is not None:
            response.json = AsyncMock(side_effect=json_error)
        else:
            response.json = AsyncMock(return_value=json_data)
        response.read = AsyncMock(return_value=body)
        response.__aenter__ = AsyncMock(return_value=response)
        response.__aexit__ = AsyncMock(return_value=False)
        return response

    return _create_response


@pytest.fixture
def mock_session():
    """A stand-in for aiohttp.ClientSession whose get() is a plain Mock."""
    session = Mock()
    session.closed = False
    session.close = AsyncMock()
    return session


@pytest.fixture
def output_dir(tmp_path) -> Path:
    return tmp_path

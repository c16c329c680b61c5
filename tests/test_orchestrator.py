"""
Integration tests for the publishing pipeline.

The GitHub client, the S3 client and the email sender are replaced with mocks;
everything in between runs for real and writes into tmp_path.
"""

import json
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

from release_publisher.exceptions import APIResponseError, StorageError
from release_publisher.release.async_client import parse_release
from release_publisher.release.orchestrator import PipelineResult, PublishOrchestrator
from release_publisher.release.storage import S3Storage

pytestmark = [pytest.mark.integration]

BASE_URL = "https://connector-bucket.s3.amazonaws.com/"


@pytest.fixture
def s3_client():
    client = MagicMock()
    client.put_object.return_value = {"ETag": '"abc"'}
    return client


@pytest.fixture
def storage(s3_client):
    return S3Storage("connector-bucket", "eu-central-1", client=s3_client)


@pytest.fixture
def github_client():
    client = Mock()
    client.get_releases = AsyncMock(return_value=[])
    client.get_latest_tag_name = AsyncMock(return_value=None)
    client.fetch_asset = AsyncMock(return_value=b"payload")
    return client


@pytest.fixture
def mock_notify(mocker):
    return mocker.patch(
        "release_publisher.release.orchestrator.send_update_notification",
        return_value=True,
    )


def _releases(*items):
    return [parse_release(item) for item in items]


def _read_json(path):
    return json.loads(path.read_text(encoding="utf-8"))


def _put_keys(s3_client):
    return sorted(call.kwargs["Key"] for call in s3_client.put_object.call_args_list)


@pytest.mark.asyncio
class TestPublishPipeline:
    async def test_beta_release_is_excluded(
        self,
        publisher_config,
        github_client,
        storage,
        s3_client,
        mock_notify,
        release_factory,
        complete_assets,
    ):
        github_client.get_releases.return_value = _releases(
            release_factory("v1.0.0-beta", "2024-02-01T00:00:00Z", complete_assets),
            release_factory("v1.0.0", "2024-01-01T00:00:00Z", complete_assets),
        )
        github_client.get_latest_tag_name.return_value = "v1.0.0"

        result = await PublishOrchestrator(
            publisher_config, github_client, storage
        ).run()

        assert isinstance(result, PipelineResult)
        manifest = _read_json(publisher_config.output_dir / "manifest.json")
        latest = _read_json(publisher_config.output_dir / "latest.json")
        assert [entry["name"] for entry in manifest] == ["v1.0.0"]
        assert latest["name"] == "v1.0.0"
        assert latest["jar"] == {
            "name": "connector-1.0.0-full.jar",
            "download_url": f"{BASE_URL}v1.0.0/connector-1.0.0-full.jar",
        }
        assert _put_keys(s3_client) == [
            "latest.json",
            "manifest.json",
            "v1.0.0/ExampleConnectorConfig.json",
            "v1.0.0/connector-1.0.0-full.jar",
            "v1.0.0/jvmrun",
        ]
        assert result.descriptors_uploaded is True
        assert result.upload_error is None
        mock_notify.assert_called_once_with(
            publisher_config, publisher_config.output_dir / "manifest.json"
        )
        assert result.notified is True

    async def test_assets_fetched_from_github_urls(
        self,
        publisher_config,
        github_client,
        storage,
        mock_notify,
        release_factory,
        complete_assets,
    ):
        github_client.get_releases.return_value = _releases(
            release_factory("v1.0.0", "2024-01-01T00:00:00Z", complete_assets)
        )

        await PublishOrchestrator(publisher_config, github_client, storage).run()

        fetched = sorted(c.args[0] for c in github_client.fetch_asset.await_args_list)
        assert fetched == sorted(
            f"https://github.com/acme/connector/releases/download/{name}"
            for name in complete_assets
        )

    async def test_incomplete_release_writes_empty_manifest(
        self,
        publisher_config,
        github_client,
        storage,
        s3_client,
        mock_notify,
        release_factory,
    ):
        github_client.get_releases.return_value = _releases(
            release_factory(
                "v1.0.0", "2024-01-01T00:00:00Z", ["connector-1.0.0-full.jar"]
            )
        )

        result = await PublishOrchestrator(
            publisher_config, github_client, storage
        ).run()

        assert _read_json(publisher_config.output_dir / "manifest.json") == []
        assert not (publisher_config.output_dir / "latest.json").exists()
        assert result.latest is None
        s3_client.put_object.assert_not_called()
        mock_notify.assert_called_once()

    async def test_stale_latest_file_is_removed(
        self, publisher_config, github_client, storage, mock_notify
    ):
        stale = publisher_config.output_dir / "latest.json"
        stale.write_text('{"name": "old"}', encoding="utf-8")

        await PublishOrchestrator(publisher_config, github_client, storage).run()

        assert not stale.exists()

    async def test_release_list_failure_stops_before_storage(
        self, publisher_config, github_client, storage, s3_client, mock_notify
    ):
        github_client.get_releases.side_effect = APIResponseError(
            "Unexpected response from GitHub API", status_code=404
        )

        with pytest.raises(APIResponseError):
            await PublishOrchestrator(publisher_config, github_client, storage).run()

        s3_client.put_object.assert_not_called()
        mock_notify.assert_not_called()
        assert not (publisher_config.output_dir / "manifest.json").exists()

    async def test_unknown_latest_tag_falls_back_to_newest(
        self,
        publisher_config,
        github_client,
        storage,
        mock_notify,
        release_factory,
        complete_assets,
    ):
        github_client.get_releases.return_value = _releases(
            release_factory("v0.9.0", "2024-01-01T00:00:00Z", complete_assets),
            release_factory("v1.1.0", "2024-03-01T00:00:00Z", complete_assets),
            release_factory("v1.0.0", "2024-02-01T00:00:00Z", complete_assets),
        )
        github_client.get_latest_tag_name.return_value = "v2.0.0-beta"

        result = await PublishOrchestrator(
            publisher_config, github_client, storage
        ).run()

        latest = _read_json(publisher_config.output_dir / "latest.json")
        manifest = _read_json(publisher_config.output_dir / "manifest.json")
        assert [entry["name"] for entry in manifest] == ["v1.1.0", "v1.0.0", "v0.9.0"]
        assert latest["name"] == "v1.1.0"
        assert result.latest.name == "v1.1.0"

    async def test_reported_latest_tag_is_used(
        self,
        publisher_config,
        github_client,
        storage,
        mock_notify,
        release_factory,
        complete_assets,
    ):
        github_client.get_releases.return_value = _releases(
            release_factory("v1.1.0", "2024-03-01T00:00:00Z", complete_assets),
            release_factory("v1.0.0", "2024-02-01T00:00:00Z", complete_assets),
        )
        github_client.get_latest_tag_name.return_value = "v1.0.0"

        await PublishOrchestrator(publisher_config, github_client, storage).run()

        latest = _read_json(publisher_config.output_dir / "latest.json")
        assert latest["name"] == "v1.0.0"

    async def test_asset_upload_failure_still_notifies(
        self,
        publisher_config,
        github_client,
        storage,
        s3_client,
        mock_notify,
        release_factory,
        complete_assets,
    ):
        github_client.get_releases.return_value = _releases(
            release_factory("v1.0.0", "2024-01-01T00:00:00Z", complete_assets)
        )

        def put_object(**params):
            if params["Key"].endswith(".jar"):
                raise StorageError("Failed to upload", key=params["Key"])
            return {}

        s3_client.put_object.side_effect = put_object

        result = await PublishOrchestrator(
            publisher_config, github_client, storage
        ).run()

        assert isinstance(result.upload_error, StorageError)
        assert result.upload_error.exit_code == 2
        mock_notify.assert_called_once()

    async def test_descriptor_upload_failure_is_not_fatal(
        self,
        publisher_config,
        github_client,
        storage,
        s3_client,
        mock_notify,
        release_factory,
        complete_assets,
    ):
        github_client.get_releases.return_value = _releases(
            release_factory("v1.0.0", "2024-01-01T00:00:00Z", complete_assets)
        )

        def put_object(**params):
            if params["Key"] == "manifest.json":
                raise StorageError("Failed to upload", key="manifest.json")
            return {}

        s3_client.put_object.side_effect = put_object

        result = await PublishOrchestrator(
            publisher_config, github_client, storage
        ).run()

        assert result.descriptors_uploaded is False
        assert result.upload_error is None
        assert len(result.summary.uploaded) == 3

    async def test_dry_run_skips_uploads(
        self,
        publisher_config,
        github_client,
        storage,
        s3_client,
        release_factory,
        complete_assets,
        mock_notify,
    ):
        github_client.get_releases.return_value = _releases(
            release_factory("v1.0.0", "2024-01-01T00:00:00Z", complete_assets)
        )

        result = await PublishOrchestrator(
            publisher_config, github_client, storage, dry_run=True, notify=False
        ).run()

        s3_client.put_object.assert_not_called()
        github_client.fetch_asset.assert_not_awaited()
        mock_notify.assert_not_called()
        assert (publisher_config.output_dir / "manifest.json").exists()
        assert result.notified is False
        assert result.summary.uploaded == []
        assert len(result.summary.planned) == 3

# src/release_publisher/cli.py

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from release_publisher import log_utils
from release_publisher.config import PublisherConfig, load_config
from release_publisher.constants import EXIT_FAILURE, EXIT_SUCCESS
from release_publisher.exceptions import PublisherError
from release_publisher.release.async_client import AsyncGitHubClient
from release_publisher.release.orchestrator import PipelineResult, PublishOrchestrator
from release_publisher.release.storage import S3Storage

COMMANDS = ("publish", "list", "version")


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a YAML configuration file",
    )
    parser.add_argument(
        "--log-level",
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        help="Also write a rotating log file to this directory",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="release-publisher",
        description="Republish GitHub release assets to S3 and write manifest files",
    )
    subparsers = parser.add_subparsers(dest="command")

    publish_parser = subparsers.add_parser(
        "publish", help="Publish releases to the storage bucket (default)"
    )
    _add_common_arguments(publish_parser)
    publish_parser.add_argument(
        "--output-dir",
        type=Path,
        help="Directory for manifest.json and latest.json (default: current directory)",
    )
    publish_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Write the manifest files but skip uploads and email",
    )
    publish_parser.add_argument(
        "--no-notify",
        action="store_true",
        help="Do not send the notification email",
    )

    list_parser = subparsers.add_parser(
        "list", help="List the objects stored in the target bucket"
    )
    _add_common_arguments(list_parser)

    subparsers.add_parser("version", help="Display release-publisher version")
    return parser


def _setup_logging(args: argparse.Namespace, config: Optional[PublisherConfig]) -> None:
    """Apply the CLI log level, falling back to the configured one."""
    level = args.log_level or (config.log_level if config else None)
    if level:
        log_utils.set_log_level(level)
    if args.log_dir:
        log_utils.add_file_logging(args.log_dir, level or "INFO")


def _load(args: argparse.Namespace) -> PublisherConfig:
    overrides: Dict[str, Any] = {}
    if getattr(args, "output_dir", None):
        overrides["OUTPUT_DIR"] = args.output_dir
    return load_config(config_path=args.config, overrides=overrides)


async def _publish(
    config: PublisherConfig, dry_run: bool, notify: bool
) -> PipelineResult:
    storage = S3Storage(config.target_bucket, config.aws_region)
    async with AsyncGitHubClient(config.github_token) as client:
        orchestrator = PublishOrchestrator(
            config, client, storage, dry_run=dry_run, notify=notify
        )
        return await orchestrator.run()


def run_publish(args: argparse.Namespace) -> int:
    """
    Run the publishing pipeline and translate its outcome into an exit status.

    An asset upload failure is fatal only after the notification was attempted.
    """
    config = _load(args)
    _setup_logging(args, config)

    notify = not (args.dry_run or args.no_notify)
    result = asyncio.run(_publish(config, args.dry_run, notify))
    if result.upload_error is not None:
        return result.upload_error.exit_code
    return EXIT_SUCCESS


def run_list(args: argparse.Namespace) -> int:
    config = _load(args)
    _setup_logging(args, config)
    storage = S3Storage(config.target_bucket, config.aws_region)
    for key in storage.list_objects():
        print(key)
    return EXIT_SUCCESS


def get_release_publisher_version() -> str:
    """
    Retrieve the installed release-publisher package version.

    Returns:
        str: The installed version string, or "unknown" if it cannot be determined.
    """
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("release-publisher")
    except PackageNotFoundError:
        return "unknown"


def _with_command_first(argv: List[str]) -> List[str]:
    """
    Move the subcommand to the front of `argv`, defaulting to `publish`.

    Options are defined on the subcommands, so `--config x.yaml list` becomes
    `list --config x.yaml`. A bare `-h`/`--help` is left for the top-level parser.
    """
    argv = list(argv)
    if argv in (["-h"], ["--help"]):
        return argv
    for index, token in enumerate(argv):
        if token in COMMANDS:
            return [token] + argv[:index] + argv[index + 1 :]
    return ["publish"] + argv


def run(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, dispatch the subcommand and return the process exit status.

    `publish` is the default when no subcommand is given. Any PublisherError
    escaping a command is logged and mapped to its exit code.
    """
    parser = build_parser()
    args = parser.parse_args(_with_command_first(sys.argv[1:] if argv is None else argv))

    if args.command == "version":
        print(f"release-publisher {get_release_publisher_version()}")
        return EXIT_SUCCESS

    try:
        if args.command == "list":
            return run_list(args)
        return run_publish(args)
    except PublisherError as error:
        log_utils.logger.error(str(error))
        return error.exit_code
    except KeyboardInterrupt:
        log_utils.logger.error("Interrupted.")
        return EXIT_FAILURE


def main():
    """Entry point for the release-publisher command-line interface."""
    sys.exit(run())


if __name__ == "__main__":
    main()

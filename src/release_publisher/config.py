"""
Configuration loading for release-publisher.

A run is configured once, at process start, from an optional YAML file and the
environment. The resulting PublisherConfig is immutable and handed to every
component explicitly.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import platformdirs
import yaml

from release_publisher.constants import (
    APP_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_ASSET_PATTERNS,
    DEFAULT_AWS_REGION,
    DEFAULT_NOTIFY_FROM,
    ENV_AWS_REGION,
    ENV_CONFIG_PATH,
    ENV_GITHUB_REPOSITORY,
    ENV_GITHUB_REPOSITORY_OWNER,
    ENV_GITHUB_TOKEN,
    ENV_S3_BASE_URL,
    ENV_SENDGRID_API_KEY,
    ENV_SENDGRID_TARGET_LIST,
    ENV_TARGET_BUCKET,
    EXIT_MISSING_REPOSITORY,
    FILTER_TAG_STRINGS,
    GITHUB_API_BASE,
    REQUIRED_ENV_EXIT_CODES,
)
from release_publisher.exceptions import ConfigFileError, ConfigurationError
from release_publisher.log_utils import logger

# Keys read from the environment; any of them may also come from the YAML file
ENV_KEYS = (
    ENV_TARGET_BUCKET,
    ENV_S3_BASE_URL,
    ENV_GITHUB_REPOSITORY,
    ENV_GITHUB_REPOSITORY_OWNER,
    ENV_GITHUB_TOKEN,
    ENV_SENDGRID_API_KEY,
    ENV_SENDGRID_TARGET_LIST,
    ENV_AWS_REGION,
)


@dataclass(frozen=True)
class PublisherConfig:
    """Validated settings for one publishing run."""

    target_bucket: str
    s3_base_url: str
    repository: str
    repository_owner: str
    github_token: Optional[str] = None
    sendgrid_api_key: Optional[str] = None
    sendgrid_target_list: Optional[str] = None
    aws_region: str = DEFAULT_AWS_REGION
    github_api_base: str = GITHUB_API_BASE
    notify_from: str = DEFAULT_NOTIFY_FROM
    output_dir: Path = field(default_factory=Path.cwd)
    log_level: Optional[str] = None
    filter_tag_strings: Tuple[str, ...] = FILTER_TAG_STRINGS
    asset_patterns: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_ASSET_PATTERNS)
    )

    @property
    def releases_url(self) -> str:
        return f"{self.github_api_base.rstrip('/')}/repos/{self.repository}/releases"

    @property
    def latest_release_url(self) -> str:
        return f"{self.releases_url}/latest"

    def compiled_asset_patterns(self) -> Dict[str, "re.Pattern[str]"]:
        return {key: re.compile(value) for key, value in self.asset_patterns.items()}


def default_config_path() -> Path:
    """
    Return the YAML configuration path used when none is given explicitly.

    `RELEASE_PUBLISHER_CONFIG` wins over the platformdirs user config directory.
    """
    env_path = os.environ.get(ENV_CONFIG_PATH)
    if env_path:
        return Path(env_path)
    return Path(platformdirs.user_config_dir(APP_NAME)) / CONFIG_FILE_NAME


def read_config_file(path: Path) -> Dict[str, Any]:
    """
    Parse a YAML configuration file into a mapping.

    Returns an empty mapping for an empty file.

    Raises:
        ConfigFileError: If the file cannot be read, is not valid YAML, or does
            not contain a mapping at the top level.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigFileError(
            f"Unable to read configuration file {path}", details=str(exc)
        ) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigFileError(
            f"Configuration file {path} must contain a mapping",
            details=f"got {type(data).__name__}",
        )
    return data


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _merge_asset_patterns(raw: Any) -> Dict[str, str]:
    patterns = dict(DEFAULT_ASSET_PATTERNS)
    if raw is None:
        return patterns
    if not isinstance(raw, dict):
        raise ConfigurationError(
            "ASSET_PATTERNS must be a mapping", details=f"got {type(raw).__name__}"
        )
    for key, value in raw.items():
        if key not in patterns:
            raise ConfigurationError(
                f"Unknown asset pattern key {key!r}",
                details=f"expected one of {', '.join(sorted(patterns))}",
            )
        try:
            re.compile(str(value))
        except re.error as exc:
            raise ConfigurationError(
                f"Invalid regular expression for {key}", details=str(exc)
            ) from exc
        patterns[key] = str(value)
    return patterns


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> PublisherConfig:
    """
    Build the run configuration from the YAML file, the environment and CLI overrides.

    Precedence, lowest first: built-in defaults, the YAML file, the environment,
    `overrides`. An explicitly given `config_path` must exist; the default path
    is read only when present.

    Every required value is checked before raising, so a single error reports all
    of them. Its exit code is the one of the first missing value in the order
    bucket, base URL, repository, owner.

    Raises:
        ConfigurationError: When required values are missing or malformed.
        ConfigFileError: When the YAML file cannot be parsed.
    """
    environ = os.environ if environ is None else environ

    file_values: Dict[str, Any] = {}
    if config_path is not None:
        file_values = read_config_file(Path(config_path))
        logger.debug(f"Loaded configuration file {config_path}")
    else:
        candidate = default_config_path()
        if candidate.is_file():
            file_values = read_config_file(candidate)
            logger.debug(f"Loaded configuration file {candidate}")

    values: Dict[str, Any] = dict(file_values)
    for key in ENV_KEYS:
        env_value = _clean(environ.get(key))
        if env_value is not None:
            values[key] = env_value
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    missing: List[str] = []
    exit_code: Optional[int] = None
    for key, code in REQUIRED_ENV_EXIT_CODES:
        if _clean(values.get(key)) is None:
            missing.append(key)
            if exit_code is None:
                exit_code = code
    if missing:
        for key in missing:
            logger.error(f"Error reading environment variable {key}.")
        raise ConfigurationError(
            "Missing required configuration",
            missing=missing,
            exit_code=exit_code or EXIT_MISSING_REPOSITORY,
            details=", ".join(missing),
        )

    repository = str(_clean(values[ENV_GITHUB_REPOSITORY]))
    owner_part, _, repo_part = repository.partition("/")
    if not owner_part or not repo_part or "/" in repo_part:
        raise ConfigurationError(
            f"{ENV_GITHUB_REPOSITORY} must look like 'owner/repo'",
            exit_code=EXIT_MISSING_REPOSITORY,
            details=repository,
        )

    filter_strings = values.get("FILTER_TAG_STRINGS", FILTER_TAG_STRINGS)
    if not isinstance(filter_strings, (list, tuple)) or not all(
        isinstance(s, str) and s for s in filter_strings
    ):
        raise ConfigurationError(
            "FILTER_TAG_STRINGS must be a list of non-empty strings",
            details=repr(filter_strings),
        )

    output_dir = values.get("OUTPUT_DIR")
    log_level = _clean(values.get("LOG_LEVEL"))

    return PublisherConfig(
        target_bucket=str(_clean(values[ENV_TARGET_BUCKET])),
        s3_base_url=str(_clean(values[ENV_S3_BASE_URL])),
        repository=repository,
        repository_owner=str(_clean(values[ENV_GITHUB_REPOSITORY_OWNER])),
        github_token=_clean(values.get(ENV_GITHUB_TOKEN)),
        sendgrid_api_key=_clean(values.get(ENV_SENDGRID_API_KEY)),
        sendgrid_target_list=_clean(values.get(ENV_SENDGRID_TARGET_LIST)),
        aws_region=_clean(values.get(ENV_AWS_REGION)) or DEFAULT_AWS_REGION,
        github_api_base=_clean(values.get("GITHUB_API_BASE")) or GITHUB_API_BASE,
        notify_from=_clean(values.get("NOTIFY_FROM")) or DEFAULT_NOTIFY_FROM,
        output_dir=Path(output_dir) if output_dir else Path.cwd(),
        log_level=log_level,
        filter_tag_strings=tuple(filter_strings),
        asset_patterns=_merge_asset_patterns(values.get("ASSET_PATTERNS")),
    )

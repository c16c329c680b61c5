"""
Constants and configuration values for release-publisher.

This module contains all hardcoded values, URLs, timeouts, and other constants
used throughout the application.
"""

# GitHub API
GITHUB_API_BASE = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_ACCEPT_HEADER = "application/vnd.github+json"

# Network timeouts (in seconds)
DEFAULT_REQUEST_TIMEOUT = 30
NOTIFICATION_REQUEST_TIMEOUT = 10
DEFAULT_MAX_CONCURRENT_UPLOADS = 4

HTTP_STATUS_OK = 200

# Object storage
DEFAULT_AWS_REGION = "eu-central-1"
S3_API_VERSION = "2006-03-01"
S3_OBJECT_ACL = "public-read"

# Output files
MANIFEST_FILE_NAME = "manifest.json"
LATEST_FILE_NAME = "latest.json"
DEFAULT_JSON_INDENT = 2

# MIME types
MIME_JSON = "application/json"
MIME_JAR = "application/java-archive"
MIME_TXT = "text/plain"

# Tags containing any of these substrings are never published (case-sensitive)
FILTER_TAG_STRINGS = ("pre", "beta", "alpha")

# Asset name patterns, keyed by the manifest field they populate
JAR_ASSET_KEY = "jar"
CONFIGURATION_ASSET_KEY = "configuration"
JVM_RUN_ASSET_KEY = "jvmRun"

DEFAULT_ASSET_PATTERNS = {
    JAR_ASSET_KEY: r"^.*-\d\.\d\.\d-\w+\.jar\b",
    CONFIGURATION_ASSET_KEY: r"^.*ConnectorConfig\.json$",
    JVM_RUN_ASSET_KEY: r"^jvmrun",
}

ASSET_CONTENT_TYPES = {
    JAR_ASSET_KEY: MIME_JAR,
    CONFIGURATION_ASSET_KEY: MIME_JSON,
    JVM_RUN_ASSET_KEY: MIME_TXT,
}

# Email notification (SendGrid v3 REST API)
SENDGRID_MAIL_SEND_URL = "https://api.sendgrid.com/v3/mail/send"
DEFAULT_NOTIFY_FROM = "no-reply@hmsamericas.com"

# Environment variable names
ENV_TARGET_BUCKET = "TARGET_BUCKET"
ENV_S3_BASE_URL = "S3_BASE_URL"
ENV_GITHUB_REPOSITORY = "GITHUB_REPOSITORY"
ENV_GITHUB_REPOSITORY_OWNER = "GITHUB_REPOSITORY_OWNER"
ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
ENV_SENDGRID_API_KEY = "SENDGRID_API_KEY"
ENV_SENDGRID_TARGET_LIST = "SENDGRID_TARGET_LIST"
ENV_AWS_REGION = "AWS_REGION"
ENV_CONFIG_PATH = "RELEASE_PUBLISHER_CONFIG"
LOG_LEVEL_ENV_VAR = "RELEASE_PUBLISHER_LOG_LEVEL"

# Process exit codes
EXIT_SUCCESS = 0
EXIT_UNEXPECTED_RESPONSE = 1
EXIT_FAILURE = 2
EXIT_MISSING_TARGET_BUCKET = 3
EXIT_MISSING_S3_BASE_URL = 4
EXIT_MISSING_REPOSITORY = 5
EXIT_MISSING_REPOSITORY_OWNER = 6

# Required environment values in the order they are reported
REQUIRED_ENV_EXIT_CODES = (
    (ENV_TARGET_BUCKET, EXIT_MISSING_TARGET_BUCKET),
    (ENV_S3_BASE_URL, EXIT_MISSING_S3_BASE_URL),
    (ENV_GITHUB_REPOSITORY, EXIT_MISSING_REPOSITORY),
    (ENV_GITHUB_REPOSITORY_OWNER, EXIT_MISSING_REPOSITORY_OWNER),
)

# Configuration file
APP_NAME = "release-publisher"
CONFIG_FILE_NAME = "config.yaml"

# Logging configuration
LOGGER_NAME = "release_publisher"
LOG_FILE_NAME = "release-publisher.log"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

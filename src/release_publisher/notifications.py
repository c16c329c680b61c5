"""
Notification utilities for release-publisher.

This module emails a summary of a publishing run through the SendGrid v3 mail
send endpoint, with the manifest attached. Notification is best-effort: every
failure is logged and swallowed.
"""

import base64
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests  # type: ignore[import-untyped]

from release_publisher.config import PublisherConfig
from release_publisher.constants import (
    ENV_SENDGRID_TARGET_LIST,
    MANIFEST_FILE_NAME,
    MIME_JSON,
    NOTIFICATION_REQUEST_TIMEOUT,
    SENDGRID_MAIL_SEND_URL,
)
from release_publisher.exceptions import NotificationError
from release_publisher.log_utils import logger


def parse_target_list(raw: Optional[str]) -> List[str]:
    """
    Parse the recipient list, a JSON array of email addresses.

    Raises:
        NotificationError: If the value is missing, not valid JSON, or not a
            non-empty array of strings.
    """
    if not raw:
        raise NotificationError(
            f"Notification canceled because {ENV_SENDGRID_TARGET_LIST} environment var was not set."
        )
    try:
        recipients = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise NotificationError(
            f"JSON parsing error on string {raw}", details=str(exc)
        ) from exc
    if isinstance(recipients, str):
        recipients = [recipients]
    if (
        not isinstance(recipients, list)
        or not recipients
        or not all(isinstance(r, str) and r for r in recipients)
    ):
        raise NotificationError(
            f"{ENV_SENDGRID_TARGET_LIST} must be a JSON array of email addresses",
            details=raw,
        )
    return recipients


def build_message(
    config: PublisherConfig,
    recipients: List[str],
    manifest_content: bytes,
) -> Dict[str, Any]:
    """Build the SendGrid v3 request body for the update email."""
    html = (
        "<div><p>Greetings,</p><p>This is an automated email. "
        f"The S3 repo {config.s3_base_url} for project {config.repository} "
        "has been updated. The manifest file is attached to this email.</p></div>"
    )
    return {
        "personalizations": [{"to": [{"email": address} for address in recipients]}],
        "from": {"email": config.notify_from},
        "subject": f"Connector update for {config.repository}",
        "content": [{"type": "text/html", "value": html}],
        "attachments": [
            {
                "content": base64.b64encode(manifest_content).decode("ascii"),
                "filename": MANIFEST_FILE_NAME,
                "type": MIME_JSON,
                "disposition": "attachment",
            }
        ],
    }


def send_sendgrid_email(api_key: str, message: Dict[str, Any]) -> int:
    """
    POST a message to the SendGrid mail send endpoint.

    Returns:
        int: HTTP status code of the accepted request.

    Raises:
        NotificationError: If the request fails or SendGrid rejects it.
    """
    try:
        response: requests.Response = requests.post(
            SENDGRID_MAIL_SEND_URL,
            json=message,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=NOTIFICATION_REQUEST_TIMEOUT,
        )
        response.raise_for_status()
    except requests.exceptions.HTTPError as e:
        body = e.response.text if e.response is not None else ""
        raise NotificationError("SendGrid rejected the message", details=body) from e
    except requests.exceptions.RequestException as e:
        raise NotificationError("Error sending notification", details=str(e)) from e
    return response.status_code


def send_update_notification(
    config: PublisherConfig, manifest_path: Optional[Path] = None
) -> bool:
    """
    Email the configured recipients that the bucket has been updated.

    The manifest is attached when it exists; an empty array is attached
    otherwise so recipients can tell nothing was published.

    Returns:
        bool: True if SendGrid accepted the message, False otherwise.
    """
    if not config.sendgrid_api_key:
        logger.warning("Notification canceled because SENDGRID_API_KEY was not set.")
        return False

    try:
        recipients = parse_target_list(config.sendgrid_target_list)
        manifest_content = b"[]"
        if manifest_path is not None and manifest_path.is_file():
            manifest_content = manifest_path.read_bytes()
        message = build_message(config, recipients, manifest_content)
        status = send_sendgrid_email(config.sendgrid_api_key, message)
    except NotificationError as e:
        logger.error(str(e))
        return False
    except OSError as e:
        logger.error(f"Unable to read manifest for notification: {e}")
        return False

    logger.info(f"Notification sent to {len(recipients)} recipient(s) (HTTP {status})")
    return True

"""
Compose helpers for clients of the send endpoint.

Turns local files into encoded attachment payloads and assembles the JSON
body for POST /api/emails/, leaving out reply-to / cc / bcc groups the user
left blank. Used by scripts/send_email.py.
"""

import base64
import mimetypes
from pathlib import Path
from typing import List, Optional, Union

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def detect_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or DEFAULT_CONTENT_TYPE


def attachment_from_bytes(
    content: bytes,
    filename: str,
    content_type: Optional[str] = None,
) -> dict:
    """Build an attachment payload: base64 file_data plus the raw byte size."""
    return {
        "filename": filename,
        "content_type": content_type or detect_content_type(filename),
        "size": len(content),
        "file_data": base64.b64encode(content).decode(),
    }


def attachment_from_path(path: Union[str, Path]) -> dict:
    """
    Read a file from disk and build its attachment payload.

    Raises:
        FileNotFoundError: if the path does not exist
    """
    file_path = Path(path)
    return attachment_from_bytes(file_path.read_bytes(), file_path.name)


def _optional_contact(name: Optional[str], email: Optional[str]) -> Optional[dict]:
    # Same rule as the compose form: include the group if either input was filled
    if not name and not email:
        return None
    return {"name": name or "", "email": email or ""}


def build_send_payload(
    from_name: str,
    from_email: str,
    to_name: str,
    to_email: str,
    subject: str,
    body: str,
    message_format: str = "plain",
    reply_to_name: Optional[str] = None,
    reply_to_email: Optional[str] = None,
    cc_name: Optional[str] = None,
    cc_email: Optional[str] = None,
    bcc_name: Optional[str] = None,
    bcc_email: Optional[str] = None,
    attachments: Optional[List[dict]] = None,
) -> dict:
    """
    Assemble the JSON request body for sending an email.

    Half-filled optional groups are passed through unchanged so the API can
    reject them with a field-level error.
    """
    payload = {
        "from": {"name": from_name, "email": from_email},
        "to": {"name": to_name, "email": to_email},
        "subject": subject,
        "body": body,
        "message_format": message_format,
        "attachments": attachments or [],
    }

    for key, name, email in (
        ("reply_to", reply_to_name, reply_to_email),
        ("cc", cc_name, cc_email),
        ("bcc", bcc_name, bcc_email),
    ):
        contact = _optional_contact(name, email)
        if contact is not None:
            payload[key] = contact

    return payload


def redact_payload(payload: dict) -> dict:
    """Copy of a send payload with attachment data replaced by a size marker."""
    display = dict(payload)
    display["attachments"] = [
        {**a, "file_data": f"<base64-encoded, {a['size']} bytes>"}
        for a in payload.get("attachments", [])
    ]
    return display

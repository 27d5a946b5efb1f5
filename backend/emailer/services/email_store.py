"""
Email persistence service.

Create/read operations over the ``emails`` and ``attachments`` tables.
Every function takes the Supabase client as its first argument; the
router obtains it from the ``get_db`` dependency.

The email row and its attachment rows are written by a single call to the
``create_email_with_attachments`` Postgres function (see
supabase/migrations), so a failure on any attachment rolls back the email
as well and no orphaned rows are left behind.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from supabase import Client

from emailer.models.email import (
    Attachment,
    Email,
    EmailWithAttachments,
    GetEmailsParams,
    OptionalEmailContact,
    SendEmailRequest,
    SendEmailResponse,
)

logger = logging.getLogger(__name__)

EMAILS_TABLE = "emails"
CREATE_EMAIL_RPC = "create_email_with_attachments"

SEND_SUCCESS_MESSAGE = "Email sent successfully"
SEND_FAILURE_MESSAGE = "Failed to send email"

# Columns returned by the history list. Attachments are only joined in
# for the single-email view.
LIST_COLUMNS = (
    "id, from_name, from_email, to_name, to_email, "
    "reply_to_name, reply_to_email, cc_name, cc_email, bcc_name, bcc_email, "
    "subject, body, message_format, sent_at, created_at"
)


def _contact_columns(prefix: str, contact: Optional[OptionalEmailContact]) -> dict:
    if contact is None:
        return {f"{prefix}_name": None, f"{prefix}_email": None}
    return {f"{prefix}_name": contact.name, f"{prefix}_email": contact.email}


def build_email_row(request: SendEmailRequest, sent_at: Optional[datetime] = None) -> dict:
    """
    Flatten a send request into an ``emails`` row.

    sent_at is stamped here, at persistence time. No delivery step exists,
    so the row is considered sent as soon as it is stored.
    """
    if sent_at is None:
        sent_at = datetime.now(timezone.utc)

    row = {
        "from_name": request.from_.name,
        "from_email": request.from_.email,
        "to_name": request.to.name,
        "to_email": request.to.email,
        **_contact_columns("reply_to", request.reply_to),
        **_contact_columns("cc", request.cc),
        **_contact_columns("bcc", request.bcc),
        "subject": request.subject,
        "body": request.body,
        "message_format": request.message_format.value,
        "sent_at": sent_at.isoformat(),
    }
    return row


def build_attachment_rows(request: SendEmailRequest) -> List[dict]:
    """Attachment rows without email_id; the RPC fills it in."""
    return [attachment.model_dump() for attachment in request.attachments]


def send_email(client: Client, request: SendEmailRequest) -> SendEmailResponse:
    """
    Persist an email and its attachments in one transaction.

    Returns:
        SendEmailResponse with success=True and the new email_id, or
        success=False (no email_id) if the write failed for any reason.
    """
    email_row = build_email_row(request)
    attachment_rows = build_attachment_rows(request)

    try:
        result = client.rpc(
            CREATE_EMAIL_RPC,
            {"p_email": email_row, "p_attachments": attachment_rows},
        ).execute()
    except Exception as e:
        logger.error(
            f"Failed to persist email with {len(attachment_rows)} attachment(s): {e}",
            exc_info=True,
        )
        return SendEmailResponse(success=False, message=SEND_FAILURE_MESSAGE)

    email_id = result.data
    # Scalar-returning functions come back bare, but tolerate a wrapped row
    if isinstance(email_id, list):
        email_id = email_id[0] if email_id else None
    if isinstance(email_id, dict):
        email_id = email_id.get(CREATE_EMAIL_RPC) or email_id.get("id")

    if not email_id:
        logger.error(f"{CREATE_EMAIL_RPC} returned no id: {result.data!r}")
        return SendEmailResponse(success=False, message=SEND_FAILURE_MESSAGE)

    logger.info(
        f"Email {email_id} stored with {len(attachment_rows)} attachment(s), "
        f"format={request.message_format.value}"
    )
    return SendEmailResponse(success=True, message=SEND_SUCCESS_MESSAGE, email_id=int(email_id))


def get_email_by_id(client: Client, email_id: int) -> Optional[EmailWithAttachments]:
    """
    Fetch one email with its attachments.

    Returns None when no email has the given id. Storage errors propagate
    to the caller.
    """
    result = (
        client.table(EMAILS_TABLE)
        .select("*, attachments(*)")
        .eq("id", email_id)
        .execute()
    )

    if not result.data:
        return None

    row = dict(result.data[0])
    attachments = sorted(row.pop("attachments", None) or [], key=lambda a: a["id"])

    return EmailWithAttachments(
        **row,
        attachments=[Attachment(**a) for a in attachments],
    )


def get_emails(client: Client, params: Optional[GetEmailsParams] = None) -> List[Email]:
    """
    List sent emails, newest first.

    Ordered by created_at DESC with id DESC as the tie-breaker. Skips
    ``offset`` rows and returns at most ``limit``. Storage errors propagate.
    """
    if params is None:
        params = GetEmailsParams()

    result = (
        client.table(EMAILS_TABLE)
        .select(LIST_COLUMNS)
        .order("created_at", desc=True)
        .order("id", desc=True)
        .range(params.offset, params.offset + params.limit - 1)
        .execute()
    )

    return [Email(**row) for row in result.data or []]

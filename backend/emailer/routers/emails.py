"""
Email API endpoints: send, history list, and single-email lookup.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response
from supabase import Client

from emailer.db import get_db
from emailer.models.email import (
    Email,
    EmailWithAttachments,
    GetEmailsParams,
    MAX_INT4,
    SendEmailRequest,
    SendEmailResponse,
)
from emailer.services import email_store

router = APIRouter()

logger = logging.getLogger(__name__)


@router.post("/", response_model=SendEmailResponse, response_model_exclude_none=True)
async def send_email(
    payload: SendEmailRequest,
    response: Response,
    db: Client = Depends(get_db),
):
    """
    Store a composed email and its attachments.

    Request validation (contact pairs, addresses, message format,
    attachment sizes) happens before any database access and fails with 422.

    Returns {success, message, email_id}. If the write fails the body is
    {success: false, message} with status 500.
    """
    logger.info(
        f"Send request received — format={payload.message_format.value}, "
        f"attachments={len(payload.attachments)}"
    )

    result = email_store.send_email(db, payload)

    if not result.success:
        response.status_code = 500

    return result


@router.get("/", response_model=List[Email])
async def list_emails(
    limit: int = Query(default=50, gt=0),
    offset: int = Query(default=0, ge=0),
    db: Client = Depends(get_db),
):
    """
    List sent emails, most recently created first.

    Attachments are not included; fetch a single email to get them.
    """
    try:
        return email_store.get_emails(db, GetEmailsParams(limit=limit, offset=offset))
    except Exception as e:
        logger.error(f"Failed to fetch emails (limit={limit}, offset={offset}): {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch emails")


@router.get("/{email_id}", response_model=Optional[EmailWithAttachments])
async def get_email(
    email_id: int = Path(gt=0, le=MAX_INT4),
    db: Client = Depends(get_db),
):
    """
    Get a single email with its attachments.

    An unknown id is not an error: the response body is ``null``.
    """
    try:
        email = email_store.get_email_by_id(db, email_id)
    except Exception as e:
        logger.error(f"Failed to fetch email {email_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch email")

    if email is None:
        logger.info(f"Email {email_id} not found")

    return email

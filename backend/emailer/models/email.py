"""
Pydantic models for composing and storing emails.

Models:
  EmailContact          — required (name, address) pair for from / to
  OptionalEmailContact  — reply-to / cc / bcc pair, both-or-neither
  AttachmentInput       — encoded file payload sent with a new email
  SendEmailRequest      — request body for POST /api/emails/
  SendEmailResponse     — result of a send (email_id omitted on failure)
  GetEmailsParams       — pagination for the history list
  Attachment / Email    — DB rows from the attachments / emails tables
  EmailWithAttachments  — single-email view with its attachments joined in
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


# Upper bound of the Postgres integer columns (ids, attachment size)
MAX_INT4 = 2_147_483_647


class MessageFormat(str, Enum):
    PLAIN = "plain"
    HTML = "html"
    RICH = "rich"


# ---------------------------------------------------------------------------
# Contacts
# ---------------------------------------------------------------------------

class EmailContact(BaseModel):
    """A contact that must be fully specified (from, to)."""
    name: str
    email: EmailStr


class OptionalEmailContact(BaseModel):
    """
    Contact used for reply-to, cc and bcc.

    The compose form always posts both inputs. An empty string counts as a
    missing value, and a group whose inputs are both blank is dropped. If
    either name or email is present, both must be.
    """
    name: Optional[str] = None
    email: Optional[EmailStr] = None

    @model_validator(mode="before")
    @classmethod
    def blank_to_none(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = {k: (None if v == "" else v) for k, v in data.items()}
        values = [data.get("name"), data.get("email")]
        # Whitespace only collapses when the whole group is blank
        if all(v is None or (isinstance(v, str) and not v.strip()) for v in values):
            data["name"] = None
            data["email"] = None
        return data

    @model_validator(mode="after")
    def both_or_neither(self) -> "OptionalEmailContact":
        if (self.name is None) != (self.email is None):
            raise ValueError("Both name and email must be provided if either is specified")
        return self

    @property
    def is_empty(self) -> bool:
        return self.name is None and self.email is None


# ---------------------------------------------------------------------------
# Send request / response
# ---------------------------------------------------------------------------

class AttachmentInput(BaseModel):
    """A file attached to a new email. file_data is base64 text, stored as-is."""
    filename: str
    content_type: str
    size: int = Field(ge=0, le=MAX_INT4)
    file_data: str


class SendEmailRequest(BaseModel):
    """
    Request body for sending an email.

    ``from`` is a Python keyword, so the field is ``from_`` with a JSON alias.
    Both spellings are accepted on input.
    """
    model_config = {"populate_by_name": True}

    from_: EmailContact = Field(alias="from")
    to: EmailContact
    reply_to: Optional[OptionalEmailContact] = None
    cc: Optional[OptionalEmailContact] = None
    bcc: Optional[OptionalEmailContact] = None
    subject: str
    body: str
    message_format: MessageFormat = MessageFormat.PLAIN
    attachments: List[AttachmentInput] = Field(default_factory=list)

    @field_validator("reply_to", "cc", "bcc")
    @classmethod
    def drop_empty_contact(cls, v: Optional[OptionalEmailContact]) -> Optional[OptionalEmailContact]:
        # {"name": "", "email": ""} means the group was left blank
        if v is not None and v.is_empty:
            return None
        return v


class SendEmailResponse(BaseModel):
    success: bool
    message: str
    email_id: Optional[int] = None


class GetEmailsParams(BaseModel):
    """Pagination for the sent-email history."""
    limit: int = Field(default=50, gt=0)
    offset: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# DB rows
# ---------------------------------------------------------------------------

class Attachment(BaseModel):
    """Full attachment record from the database."""
    model_config = {"from_attributes": True}

    id: int
    email_id: int
    filename: str
    content_type: str
    size: int
    file_data: str
    created_at: datetime


class Email(BaseModel):
    """Full email record from the database (list view, no attachments)."""
    model_config = {"from_attributes": True}

    id: int
    from_name: str
    from_email: str
    to_name: str
    to_email: str
    reply_to_name: Optional[str] = None
    reply_to_email: Optional[str] = None
    cc_name: Optional[str] = None
    cc_email: Optional[str] = None
    bcc_name: Optional[str] = None
    bcc_email: Optional[str] = None
    subject: str
    body: str
    message_format: MessageFormat
    sent_at: Optional[datetime] = None
    created_at: datetime


class EmailWithAttachments(Email):
    """Single email returned by id, with its attachments joined in."""
    attachments: List[Attachment] = Field(default_factory=list)


class HealthStatus(BaseModel):
    status: str
    timestamp: str

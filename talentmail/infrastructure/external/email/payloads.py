"""Transport payload builders (pure functions, no I/O).

- build_mime_message / encode_gmail_raw: multipart/alternative MIME for
  Gmail's `raw` field and for SMTP.
- build_graph_send_mail: Microsoft Graph sendMail JSON envelope.
- build_resend_params: parameters for the Resend SDK.
"""

from __future__ import annotations

import base64
import secrets
from email.header import Header
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Any

from talentmail.infrastructure.external.email.protocols import EmailMessage


def format_sender(message: EmailMessage) -> str:
    """Return `Name <address>` when a display name is set, else the bare address."""
    if message.from_name:
        return formataddr((message.from_name, message.from_address))
    return message.from_address


def _header_value(value: str) -> str:
    """RFC 2047-encode non-ASCII header values."""
    if value.isascii():
        return value
    return Header(value, "utf-8").encode()


def generate_boundary() -> str:
    return f"boundary_{secrets.token_hex(12)}"


def build_mime_message(
    message: EmailMessage,
    *,
    boundary: str | None = None,
) -> MIMEMultipart:
    """Build a multipart/alternative message.

    Part order: text/plain (only when text is set), then text/html. Custom
    headers are appended after From/To/Subject/Reply-To.
    """
    mime = MIMEMultipart("alternative", boundary=boundary or generate_boundary())
    mime["From"] = format_sender(message)
    mime["To"] = message.to
    mime["Subject"] = _header_value(message.subject)
    if message.reply_to:
        mime["Reply-To"] = message.reply_to
    for name, value in message.headers.items():
        mime[name] = _header_value(value)
    if message.text:
        mime.attach(MIMEText(message.text, "plain", "utf-8"))
    mime.attach(MIMEText(message.html, "html", "utf-8"))
    return mime


def mime_to_bytes(mime: MIMEMultipart) -> bytes:
    """Serialize with CRLF line endings."""
    return mime.as_bytes(policy=mime.policy.clone(linesep="\r\n"))


def encode_gmail_raw(mime: MIMEMultipart) -> str:
    """Base64url-encode a MIME message without padding (Gmail API `raw`)."""
    return base64.urlsafe_b64encode(mime_to_bytes(mime)).rstrip(b"=").decode("ascii")


def decode_gmail_raw(raw: str) -> bytes:
    """Inverse of encode_gmail_raw (restores padding)."""
    padding = "=" * (-len(raw) % 4)
    return base64.urlsafe_b64decode(raw + padding)


def build_graph_send_mail(message: EmailMessage) -> dict[str, Any]:
    """Build the body for POST /me/sendMail.

    Custom headers go to internetMessageHeaders as plain name/value pairs.
    """
    sender: dict[str, Any] = {"address": message.from_address}
    if message.from_name:
        sender["name"] = message.from_name
    graph_message: dict[str, Any] = {
        "subject": message.subject,
        "body": {"contentType": "HTML", "content": message.html},
        "from": {"emailAddress": sender},
        "toRecipients": [{"emailAddress": {"address": message.to}}],
    }
    if message.headers:
        graph_message["internetMessageHeaders"] = [
            {"name": name, "value": value} for name, value in message.headers.items()
        ]
    if message.reply_to:
        graph_message["replyTo"] = [{"emailAddress": {"address": message.reply_to}}]
    return {"message": graph_message, "saveToSentItems": True}


def build_resend_params(message: EmailMessage) -> dict[str, Any]:
    """Build resend.Emails.send parameters; optional fields are omitted when unset."""
    params: dict[str, Any] = {
        "from": format_sender(message),
        "to": [message.to],
        "subject": message.subject,
        "html": message.html,
    }
    if message.text:
        params["text"] = message.text
    if message.reply_to:
        params["reply_to"] = message.reply_to
    if message.headers:
        params["headers"] = dict(message.headers)
    return params

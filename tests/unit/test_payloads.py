"""Tests for transport payload builders (MIME, Gmail raw, Graph envelope, Resend params)."""

from email import message_from_bytes

from talentmail.infrastructure.external.email.payloads import (
    build_graph_send_mail,
    build_mime_message,
    build_resend_params,
    decode_gmail_raw,
    encode_gmail_raw,
    format_sender,
)
from talentmail.infrastructure.external.email.protocols import EmailMessage


def _message(**overrides) -> EmailMessage:
    fields = {
        "from_address": "jobs@acme.example",
        "from_name": "Acme Hiring",
        "to": "candidate@example.com",
        "subject": "Interview invitation",
        "html": "<p>Hello ??>>> ~~~ ÿÿÿ</p>",
        "text": "Hello",
    }
    fields.update(overrides)
    return EmailMessage(**fields)


def test_format_sender_with_and_without_name() -> None:
    """Display name produces `Name <address>`; otherwise the bare address."""
    assert format_sender(_message()) == "Acme Hiring <jobs@acme.example>"
    assert format_sender(_message(from_name=None)) == "jobs@acme.example"


def test_mime_parts_share_one_boundary_text_first() -> None:
    """text/plain precedes text/html inside one multipart/alternative boundary."""
    mime = build_mime_message(_message(), boundary="boundary_fixed")
    assert mime.get_content_type() == "multipart/alternative"
    assert mime.get_boundary() == "boundary_fixed"
    parts = [p.get_content_type() for p in mime.get_payload()]
    assert parts == ["text/plain", "text/html"]


def test_mime_without_text_has_only_html_part() -> None:
    """Plain-text alternative is omitted when no text is supplied."""
    mime = build_mime_message(_message(text=None))
    assert [p.get_content_type() for p in mime.get_payload()] == ["text/html"]


def test_mime_headers_include_custom_and_reply_to() -> None:
    """Custom headers and Reply-To are carried on the top-level message."""
    mime = build_mime_message(
        _message(headers={"X-Application-ID": "app-1"}, reply_to="recruiter@acme.example")
    )
    assert mime["X-Application-ID"] == "app-1"
    assert mime["Reply-To"] == "recruiter@acme.example"
    assert mime["To"] == "candidate@example.com"


def test_non_ascii_subject_is_encoded_word() -> None:
    """Non-ASCII subjects are RFC 2047 encoded."""
    mime = build_mime_message(_message(subject="Entretien prévu"))
    assert mime["Subject"].startswith("=?utf-8?")


def test_gmail_raw_is_unpadded_base64url() -> None:
    """Encoded raw contains no '+', '/' or trailing '=' and decodes back to the MIME bytes."""
    mime = build_mime_message(_message())
    raw = encode_gmail_raw(mime)
    assert "+" not in raw
    assert "/" not in raw
    assert not raw.endswith("=")
    parsed = message_from_bytes(decode_gmail_raw(raw))
    assert parsed["Subject"] == "Interview invitation"
    assert parsed["To"] == "candidate@example.com"


def test_graph_envelope_shape() -> None:
    """Graph sendMail body: HTML content, sender, recipient, headers, saveToSentItems."""
    body = build_graph_send_mail(
        _message(headers={"X-Application-ID": "app-1"}, reply_to="r@acme.example")
    )
    message = body["message"]
    assert body["saveToSentItems"] is True
    assert message["subject"] == "Interview invitation"
    assert message["body"]["contentType"] == "HTML"
    assert message["from"] == {
        "emailAddress": {"address": "jobs@acme.example", "name": "Acme Hiring"}
    }
    assert message["toRecipients"] == [{"emailAddress": {"address": "candidate@example.com"}}]
    assert message["internetMessageHeaders"] == [{"name": "X-Application-ID", "value": "app-1"}]
    assert message["replyTo"] == [{"emailAddress": {"address": "r@acme.example"}}]


def test_graph_envelope_omits_empty_optionals() -> None:
    """No headers or reply-to means no internetMessageHeaders/replyTo keys."""
    message = build_graph_send_mail(_message(from_name=None))["message"]
    assert "internetMessageHeaders" not in message
    assert "replyTo" not in message
    assert message["from"] == {"emailAddress": {"address": "jobs@acme.example"}}


def test_resend_params_optional_fields() -> None:
    """Resend params include text/reply_to/headers only when set."""
    minimal = build_resend_params(_message(text=None))
    assert minimal == {
        "from": "Acme Hiring <jobs@acme.example>",
        "to": ["candidate@example.com"],
        "subject": "Interview invitation",
        "html": "<p>Hello ??>>> ~~~ ÿÿÿ</p>",
    }
    full = build_resend_params(_message(reply_to="r@acme.example", headers={"X-A": "1"}))
    assert full["text"] == "Hello"
    assert full["reply_to"] == "r@acme.example"
    assert full["headers"] == {"X-A": "1"}

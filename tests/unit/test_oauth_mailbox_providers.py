"""Tests for GmailProvider and MicrosoftProvider over a mocked HTTP transport."""

import base64
import json
from datetime import timedelta

import httpx
import pytest

from talentmail.domain.enums import EmailAccountType
from talentmail.infrastructure.exceptions import (
    AuthError,
    PermanentProviderError,
    TransientProviderError,
)
from talentmail.infrastructure.external.email.oauth_drivers import GoogleOAuthDriver
from talentmail.infrastructure.external.email.protocols import EmailMessage, TokenSet
from talentmail.infrastructure.external.email.providers.gmail_provider import (
    GMAIL_SEND_URL,
    GmailProvider,
)
from talentmail.infrastructure.external.email.providers.microsoft_provider import (
    GRAPH_SEND_MAIL_URL,
    MicrosoftProvider,
)
from talentmail.infrastructure.external.email.token_lifecycle import (
    RefreshLockRegistry,
    TokenLifecycleManager,
)
from talentmail.shared.utils.datetime import utc_now

MESSAGE = EmailMessage(
    from_address="jobs@acme.example",
    to="candidate@example.com",
    subject="Next steps",
    html="<p>Hi</p>",
    text="Hi",
)


def _manager(make_refresher, *, expires_in: int = 3600, refreshed: TokenSet | None = None):
    results = [refreshed] if refreshed else []
    return TokenLifecycleManager(
        "acct-1",
        TokenSet("at-held", "rt-held", utc_now() + timedelta(seconds=expires_in)),
        make_refresher(*results),
        None,
        locks=RefreshLockRegistry(),
    )


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def test_gmail_send_posts_raw_with_bearer_token(make_refresher) -> None:
    """Gmail send posts {raw} with the access token and returns the Gmail id."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "gmail-123", "threadId": "t-1"})

    async with _client(handler) as http:
        provider = GmailProvider(_manager(make_refresher), http_client=http)
        result = await provider.send(MESSAGE)

    assert result.provider_message_id == "gmail-123"
    assert provider.account_type is EmailAccountType.GMAIL_OAUTH
    assert str(seen[0].url) == GMAIL_SEND_URL
    assert seen[0].headers["Authorization"] == "Bearer at-held"
    raw = json.loads(seen[0].content)["raw"]
    padded = raw + "=" * (-len(raw) % 4)
    assert b"Subject: Next steps" in base64.urlsafe_b64decode(padded)


async def test_gmail_refreshes_expired_token_before_send(make_refresher) -> None:
    """Expired token is refreshed once; the new token is used on the wire."""
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["Authorization"])
        return httpx.Response(200, json={"id": "gmail-9"})

    manager = _manager(
        make_refresher,
        expires_in=10,
        refreshed=TokenSet("at-fresh", None, utc_now() + timedelta(hours=1)),
    )
    async with _client(handler) as http:
        await GmailProvider(manager, http_client=http).send(MESSAGE)
    assert seen == ["Bearer at-fresh"]


async def test_gmail_send_with_unreadable_refresh_response_is_auth_error() -> None:
    """A proxy page from the token endpoint fails the send with AuthError before any send call."""
    send_calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            return httpx.Response(200, text="<html>proxy login</html>")
        send_calls.append(request)
        return httpx.Response(200, json={"id": "never"})

    async with _client(handler) as http:
        manager = TokenLifecycleManager(
            "acct-1",
            TokenSet("at-held", "rt-held", utc_now() - timedelta(minutes=1)),
            GoogleOAuthDriver("cid", "secret", http_client=http),
            None,
            locks=RefreshLockRegistry(),
        )
        with pytest.raises(AuthError):
            await GmailProvider(manager, http_client=http).send(MESSAGE)
    assert send_calls == []


async def test_identical_sends_are_not_deduplicated(make_refresher) -> None:
    """Two identical sends under a fresh token make two transport calls and no refresh."""
    ids = iter(["gmail-1", "gmail-2"])
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": next(ids)})

    refresher = make_refresher()
    manager = TokenLifecycleManager(
        "acct-1",
        TokenSet("at-held", "rt-held", utc_now() + timedelta(hours=1)),
        refresher,
        None,
        locks=RefreshLockRegistry(),
    )
    async with _client(handler) as http:
        provider = GmailProvider(manager, http_client=http)
        first = await provider.send(MESSAGE)
        second = await provider.send(MESSAGE)

    assert len(seen) == 2
    assert first.provider_message_id != second.provider_message_id
    assert refresher.calls == []


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (401, AuthError),
        (403, AuthError),
        (429, TransientProviderError),
        (500, TransientProviderError),
        (503, TransientProviderError),
        (400, PermanentProviderError),
    ],
)
async def test_gmail_status_mapping(make_refresher, status, expected) -> None:
    """Non-2xx responses map onto the delivery error taxonomy."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"error": {"message": "nope"}})

    async with _client(handler) as http:
        provider = GmailProvider(_manager(make_refresher), http_client=http)
        with pytest.raises(expected) as info:
            await provider.send(MESSAGE)
    assert info.value.status_code == status
    assert info.value.provider == "gmail"
    assert "nope" in info.value.provider_error


async def test_gmail_network_error_is_transient(make_refresher) -> None:
    """Connection failures are retryable."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as http:
        provider = GmailProvider(_manager(make_refresher), http_client=http)
        with pytest.raises(TransientProviderError) as info:
            await provider.send(MESSAGE)
    assert info.value.retryable is True


async def test_gmail_missing_id_is_permanent(make_refresher) -> None:
    """2xx without a message id is treated as a permanent failure."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={})

    async with _client(handler) as http:
        provider = GmailProvider(_manager(make_refresher), http_client=http)
        with pytest.raises(PermanentProviderError):
            await provider.send(MESSAGE)


async def test_microsoft_202_returns_synthesized_ids(make_refresher) -> None:
    """Graph answers 202 with no body; each send gets its own synthesized id."""
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(202)

    async with _client(handler) as http:
        provider = MicrosoftProvider(_manager(make_refresher), http_client=http)
        first = await provider.send(MESSAGE)
        second = await provider.send(MESSAGE)

    assert first.provider_message_id.startswith("ms_")
    assert first.provider_message_id != second.provider_message_id
    assert provider.account_type is EmailAccountType.MICROSOFT_OAUTH
    assert bodies[0]["message"]["toRecipients"] == [
        {"emailAddress": {"address": "candidate@example.com"}}
    ]
    assert bodies[0]["saveToSentItems"] is True


async def test_microsoft_posts_to_graph_send_mail(make_refresher) -> None:
    """Request goes to /me/sendMail with a bearer token."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(202)

    async with _client(handler) as http:
        await MicrosoftProvider(_manager(make_refresher), http_client=http).send(MESSAGE)
    assert str(seen[0].url) == GRAPH_SEND_MAIL_URL
    assert seen[0].headers["Authorization"] == "Bearer at-held"


async def test_microsoft_unauthorized_is_auth_error(make_refresher) -> None:
    """401 from Graph is an AuthError and is not retryable."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"code": "InvalidAuthenticationToken"}})

    async with _client(handler) as http:
        provider = MicrosoftProvider(_manager(make_refresher), http_client=http)
        with pytest.raises(AuthError) as info:
            await provider.send(MESSAGE)
    assert info.value.retryable is False

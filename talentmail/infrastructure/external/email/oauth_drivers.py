"""OAuth provider drivers: authorization URL, code exchange, refresh, user info.

Mailbox providers use refresh_access_token from their TokenLifecycleManager;
the account service uses the rest to connect a mailbox.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, ClassVar
from urllib.parse import urlencode

import httpx
from msal import ConfidentialClientApplication

from talentmail.core.config import Settings
from talentmail.domain.enums import OAuthProvider
from talentmail.infrastructure.exceptions import AuthError, ConfigurationError
from talentmail.infrastructure.external.email.protocols import TokenSet
from talentmail.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass
class OAuthUserInfo:
    """Normalized mailbox identity from provider."""

    email: str
    name: str | None = None
    provider_user_id: str | None = None


class OAuthDriver(ABC):
    """Abstract OAuth driver: auth URL, token exchange, refresh, user info."""

    PROVIDER_NAME: ClassVar[str]
    PROVIDER: ClassVar[OAuthProvider]
    AUTHORIZATION_ENDPOINT: ClassVar[str]
    TOKEN_ENDPOINT: ClassVar[str]
    DEFAULT_SCOPES: ClassVar[tuple[str, ...]]

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        redirect_uri: str | None = None,
        scopes: list[str] | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = list(scopes) if scopes is not None else list(self.DEFAULT_SCOPES)
        self._shared_http = http_client
        self._timeout = timeout

    @property
    def provider_name(self) -> str:
        return self.PROVIDER_NAME

    @property
    def authorization_endpoint(self) -> str:
        return self.AUTHORIZATION_ENDPOINT

    @property
    def token_endpoint(self) -> str:
        return self.TOKEN_ENDPOINT

    @asynccontextmanager
    async def _http_cm(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield shared HTTP client or a short-lived one."""
        if self._shared_http is not None:
            yield self._shared_http
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    def _require_client_credentials(self) -> tuple[str, str]:
        """Return (client_id, client_secret) or fail before any network call."""
        if not self.client_id or not self.client_secret:
            raise ConfigurationError(
                f"{self.provider_name} OAuth credentials not configured",
                provider=self.PROVIDER.value,
            )
        return self.client_id, self.client_secret

    def build_authorization_url(self, state: str, **extra_params: Any) -> str:
        """Build OAuth authorization URL with state."""
        client_id, _ = self._require_client_credentials()
        if not self.redirect_uri:
            raise ConfigurationError(
                f"{self.provider_name} redirect URI not configured",
                provider=self.PROVIDER.value,
            )
        reserved = {"client_id", "redirect_uri", "response_type", "scope", "state"}
        conflicts = reserved & set(extra_params)
        if conflicts:
            raise ValueError(f"Cannot override reserved OAuth params: {conflicts}")
        params = {
            "client_id": client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": state,
            **self._get_authorization_params(),
            **extra_params,
        }
        return f"{self.authorization_endpoint}?{urlencode(params)}"

    @abstractmethod
    def _get_authorization_params(self) -> dict[str, Any]:
        """Provider-specific auth params."""
        ...

    def _token_request_extras(self) -> dict[str, str]:
        """Extra form fields for token endpoint requests (e.g. scope)."""
        return {}

    async def _post_token_form(self, data: dict[str, str], action: str) -> dict[str, Any]:
        """POST form data to the token endpoint; non-200 or network failure -> AuthError."""
        try:
            async with self._http_cm() as client:
                response = await client.post(self.token_endpoint, data=data)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", self.provider_name, action, type(e).__name__)
            raise AuthError(
                f"{self.provider_name} {action} failed",
                provider=self.PROVIDER.value,
                provider_error=str(e),
            ) from e
        if response.status_code != 200:
            logger.error(
                "%s %s failed: status=%d",
                self.provider_name,
                action,
                response.status_code,
            )
            raise AuthError(
                f"{self.provider_name} {action} failed with status {response.status_code}",
                provider=self.PROVIDER.value,
                provider_error=response.text,
                status_code=response.status_code,
            )
        return self._json_object(response, action)

    def _json_object(self, response: httpx.Response, action: str) -> dict[str, Any]:
        """Decode a 200 body that must be a JSON object; anything else -> AuthError."""
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.error("%s %s returned a non-object body", self.provider_name, action)
            raise AuthError(
                f"{self.provider_name} {action} returned an unreadable response",
                provider=self.PROVIDER.value,
                provider_error=response.text,
                status_code=response.status_code,
            )
        return data

    async def exchange_code_for_tokens(self, code: str) -> TokenSet:
        """Exchange authorization code for tokens."""
        client_id, client_secret = self._require_client_credentials()
        token_data = await self._post_token_form(
            {
                "code": code,
                "client_id": client_id,
                "client_secret": client_secret,
                "redirect_uri": self.redirect_uri or "",
                "grant_type": "authorization_code",
                **self._token_request_extras(),
            },
            "token exchange",
        )
        return self._normalize_token_response(token_data)

    async def refresh_access_token(self, refresh_token: str) -> TokenSet:
        """Refresh-grant exchange. Returned refresh_token is None unless a new one was issued."""
        client_id, client_secret = self._require_client_credentials()
        token_data = await self._post_token_form(
            {
                "client_id": client_id,
                "client_secret": client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
                **self._token_request_extras(),
            },
            "token refresh",
        )
        return self._normalize_token_response(token_data)

    @abstractmethod
    async def get_user_info(self, access_token: str) -> OAuthUserInfo:
        """Get mailbox identity from provider."""
        ...

    async def _get_json(self, url: str, access_token: str) -> dict[str, Any]:
        """Authenticated GET of a JSON object; non-200, network failure or bad body -> AuthError."""
        try:
            async with self._http_cm() as client:
                response = await client.get(
                    url, headers={"Authorization": f"Bearer {access_token}"}
                )
        except httpx.HTTPError as e:
            logger.error("%s get user info failed: %s", self.provider_name, type(e).__name__)
            raise AuthError(
                f"{self.provider_name} get user info failed",
                provider=self.PROVIDER.value,
                provider_error=str(e),
            ) from e
        if response.status_code != 200:
            logger.error(
                "%s get user info failed: status=%d",
                self.provider_name,
                response.status_code,
            )
            raise AuthError(
                f"Failed to get user info with status {response.status_code}",
                provider=self.PROVIDER.value,
                provider_error=response.text,
                status_code=response.status_code,
            )
        return self._json_object(response, "get user info")

    def _normalize_token_response(self, token_data: Any) -> TokenSet:
        """Normalize provider response to TokenSet."""
        if not isinstance(token_data, dict):
            raise AuthError(
                f"{self.provider_name} token response is not an object",
                provider=self.PROVIDER.value,
                provider_error=repr(token_data),
            )
        access_token = token_data.get("access_token")
        if not access_token:
            raise AuthError(
                f"{self.provider_name} token response missing access_token",
                provider=self.PROVIDER.value,
            )
        return TokenSet.from_expires_in(
            access_token=access_token,
            refresh_token=token_data.get("refresh_token"),
            expires_in=token_data.get("expires_in", 3600),
        )


class GoogleOAuthDriver(OAuthDriver):
    """Google OAuth driver (Gmail send scope)."""

    PROVIDER_NAME = "Google"
    PROVIDER = OAuthProvider.GOOGLE
    AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
    USERINFO_ENDPOINT = "https://www.googleapis.com/oauth2/v2/userinfo"
    DEFAULT_SCOPES = (
        "https://www.googleapis.com/auth/gmail.send",
        "https://www.googleapis.com/auth/userinfo.email",
    )

    def _get_authorization_params(self) -> dict[str, Any]:
        return {"access_type": "offline", "prompt": "consent"}

    async def get_user_info(self, access_token: str) -> OAuthUserInfo:
        data = await self._get_json(self.USERINFO_ENDPOINT, access_token)
        email = data.get("email")
        if not email:
            raise AuthError("Google account has no email", provider=self.PROVIDER.value)
        return OAuthUserInfo(
            email=email,
            name=data.get("name"),
            provider_user_id=data.get("id"),
        )


class MicrosoftOAuthDriver(OAuthDriver):
    """Microsoft identity platform driver (Graph Mail.Send).

    Refresh goes through MSAL; MSAL is blocking, so it runs in a worker thread.
    """

    PROVIDER_NAME = "Microsoft 365"
    PROVIDER = OAuthProvider.MICROSOFT
    AUTHORITY_HOST = "https://login.microsoftonline.com"
    GRAPH_ME_ENDPOINT = "https://graph.microsoft.com/v1.0/me"
    SEND_SCOPE = "https://graph.microsoft.com/Mail.Send"
    DEFAULT_SCOPES = (
        SEND_SCOPE,
        "https://graph.microsoft.com/User.Read",
        "offline_access",
    )

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        redirect_uri: str | None = None,
        scopes: list[str] | None = None,
        *,
        tenant_id: str = "common",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(
            client_id,
            client_secret,
            redirect_uri,
            scopes,
            http_client=http_client,
            timeout=timeout,
        )
        self.tenant_id = tenant_id or "common"

    @property
    def authority(self) -> str:
        return f"{self.AUTHORITY_HOST}/{self.tenant_id}"

    @property
    def authorization_endpoint(self) -> str:
        return f"{self.authority}/oauth2/v2.0/authorize"

    @property
    def token_endpoint(self) -> str:
        return f"{self.authority}/oauth2/v2.0/token"

    def _get_authorization_params(self) -> dict[str, Any]:
        return {"response_mode": "query"}

    def _token_request_extras(self) -> dict[str, str]:
        return {"scope": " ".join(self.scopes)}

    def _acquire_by_refresh_token(self, refresh_token: str) -> dict[str, Any]:
        client_id, client_secret = self._require_client_credentials()
        app = ConfidentialClientApplication(
            client_id,
            authority=self.authority,
            client_credential=client_secret,
            timeout=self._timeout,
        )
        # MSAL appends offline_access itself and rejects it when passed explicitly.
        return app.acquire_token_by_refresh_token(
            refresh_token,
            scopes=[self.SEND_SCOPE],
        )

    async def refresh_access_token(self, refresh_token: str) -> TokenSet:
        self._require_client_credentials()
        try:
            result = await asyncio.to_thread(self._acquire_by_refresh_token, refresh_token)
        except (ConfigurationError, AuthError):
            raise
        except Exception as e:
            logger.error("%s token refresh failed: %s", self.provider_name, type(e).__name__)
            raise AuthError(
                f"{self.provider_name} token refresh failed",
                provider=self.PROVIDER.value,
                provider_error=str(e),
            ) from e
        if "access_token" not in result:
            logger.error(
                "%s token refresh rejected: %s",
                self.provider_name,
                result.get("error"),
            )
            raise AuthError(
                f"{self.provider_name} token refresh failed",
                provider=self.PROVIDER.value,
                provider_error=result.get("error_description") or result.get("error"),
            )
        return self._normalize_token_response(result)

    async def get_user_info(self, access_token: str) -> OAuthUserInfo:
        data = await self._get_json(self.GRAPH_ME_ENDPOINT, access_token)
        email = data.get("mail") or data.get("userPrincipalName")
        if not email:
            raise AuthError("Microsoft account has no email", provider=self.PROVIDER.value)
        return OAuthUserInfo(
            email=email,
            name=data.get("displayName"),
            provider_user_id=data.get("id"),
        )


class OAuthDriverRegistry:
    """Builds configured drivers by OAuth provider."""

    _drivers: ClassVar[dict[OAuthProvider, type[OAuthDriver]]] = {
        OAuthProvider.GOOGLE: GoogleOAuthDriver,
        OAuthProvider.MICROSOFT: MicrosoftOAuthDriver,
    }

    @classmethod
    def callback_uri(cls, settings: Settings, provider: OAuthProvider) -> str:
        base = settings.app_base_url.rstrip("/")
        return f"{base}/api/v1/email-accounts/oauth/{provider.value}/callback"

    @classmethod
    def from_settings(
        cls,
        provider: OAuthProvider,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> OAuthDriver:
        """Driver wired with client credentials from settings (may be unset)."""
        redirect_uri = cls.callback_uri(settings, provider)
        timeout = settings.email_http_timeout_seconds
        if provider is OAuthProvider.GOOGLE:
            return GoogleOAuthDriver(
                settings.google_client_id,
                _secret(settings.google_client_secret),
                redirect_uri,
                http_client=http_client,
                timeout=timeout,
            )
        return MicrosoftOAuthDriver(
            settings.microsoft_client_id,
            _secret(settings.microsoft_client_secret),
            redirect_uri,
            tenant_id=settings.microsoft_tenant_id,
            http_client=http_client,
            timeout=timeout,
        )

    @classmethod
    def list_providers(cls) -> list[str]:
        return [p.value for p in cls._drivers]


def _secret(value: Any) -> str | None:
    return value.get_secret_value() if value is not None else None

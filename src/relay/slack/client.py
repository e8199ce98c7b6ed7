"""Slack Web API client for OAuth v2 and messaging.

Only the handful of endpoints relay needs are wrapped. Slack reports most
failures as HTTP 200 with ``{"ok": false, "error": "..."}``; OAuth calls
turn those into ProviderError, while chat.postMessage returns them in a
SendResult so the caller decides what a failed send means.
"""

import logging
from typing import Any
from urllib.parse import urlencode

import httpx
from pydantic import SecretStr

from relay.config.models import ConfigError, SlackConfig
from relay.errors import ProviderError
from relay.slack.types import Channel, SendResult, TokenGrant

logger = logging.getLogger(__name__)


class SlackClient:
    """httpx-based implementation of the Slack capabilities.

    Example:
        client = SlackClient.from_config(config.slack)
        grant = await client.exchange_code(code)
        result = await client.send_message(grant.access_token, "C123", "hi")
    """

    def __init__(
        self,
        client_id: str | None,
        client_secret: SecretStr | None,
        *,
        redirect_uri: str,
        api_base_url: str = "https://slack.com/api",
        authorize_url: str = "https://slack.com/oauth/v2/authorize",
        scopes: list[str] | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._api_base_url = api_base_url.rstrip("/")
        self._authorize_url = authorize_url
        self._scopes = scopes or []
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(
        cls, config: SlackConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> "SlackClient":
        return cls(
            config.client_id,
            config.client_secret,
            redirect_uri=config.redirect_uri,
            api_base_url=config.api_base_url,
            authorize_url=config.authorize_url,
            scopes=config.scopes,
            timeout=config.timeout,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    def _require_app(self) -> tuple[str, SecretStr]:
        if not self._client_id or self._client_secret is None:
            raise ConfigError(
                "Slack app is not configured. Set [slack] client_id/client_secret "
                "or SLACK_CLIENT_ID/SLACK_CLIENT_SECRET"
            )
        return self._client_id, self._client_secret

    def build_install_url(self, state: str | None = None) -> str:
        """Build the Slack OAuth v2 authorize URL for user scopes."""
        client_id, _ = self._require_app()
        params = {
            "client_id": client_id,
            "scope": ",".join(self._scopes),
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
        }
        if state:
            params["state"] = state
        return f"{self._authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code for tokens.

        Raises:
            ProviderError: If Slack rejects the code or returns no token.
        """
        data = await self._oauth_access({"code": code, "redirect_uri": self._redirect_uri})

        authed_user = data.get("authed_user") or {}
        team = data.get("team") or {}
        access_token = authed_user.get("access_token") or data.get("access_token")
        refresh_token = authed_user.get("refresh_token") or data.get("refresh_token")
        expires_in = authed_user.get("expires_in") or data.get("expires_in")
        if not access_token:
            access_token = (data.get("bot") or {}).get("bot_access_token")

        if not access_token:
            raise ProviderError("No access token received from Slack", code="no_token")
        if not team.get("id") or not authed_user.get("id"):
            raise ProviderError(
                "OAuth response missing team or user id", code="invalid_response"
            )

        return TokenGrant(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=_as_int(expires_in),
            workspace_id=team["id"],
            workspace_name=team.get("name"),
            user_id=authed_user["id"],
        )

    async def exchange_refresh_token(self, refresh_token: str) -> TokenGrant:
        """Trade a refresh token for a new access token.

        Raises:
            ProviderError: If Slack rejects the refresh.
        """
        data = await self._oauth_access(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )
        access_token = data.get("access_token")
        if not access_token:
            raise ProviderError("Refresh response missing access token", code="no_token")
        return TokenGrant(
            access_token=access_token,
            refresh_token=data.get("refresh_token"),
            expires_in=_as_int(data.get("expires_in")),
            workspace_id=(data.get("team") or {}).get("id"),
            user_id=data.get("user_id"),
        )

    async def _oauth_access(self, form: dict[str, str]) -> dict[str, Any]:
        client_id, client_secret = self._require_app()
        payload = {
            "client_id": client_id,
            "client_secret": client_secret.get_secret_value(),
            **form,
        }
        data = await self._request("POST", "oauth.v2.access", data=payload)
        if not data.get("ok"):
            error = str(data.get("error") or "unknown_error")
            logger.warning("slack_oauth_failed", extra={"slack.error": error})
            raise ProviderError(f"OAuth error: {error}", code=error)
        return data

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def send_message(
        self, access_token: str, channel_id: str, text: str
    ) -> SendResult:
        """Post ``text`` to ``channel_id``.

        Slack-reported failures come back as ``SendResult(ok=False)``.

        Raises:
            ProviderError: On timeouts, transport errors or non-2xx responses.
        """
        data = await self._request(
            "POST",
            "chat.postMessage",
            token=access_token,
            json={"channel": channel_id, "text": text},
        )
        if data.get("ok"):
            return SendResult(ok=True, message_id=data.get("ts"))
        return SendResult(ok=False, error=str(data.get("error") or "unknown_error"))

    async def list_channels(self, access_token: str) -> list[Channel]:
        """List public/private channels, then DMs and group DMs."""
        channels: list[Channel] = []
        for types in ("public_channel,private_channel", "im,mpim"):
            data = await self._request(
                "GET",
                "conversations.list",
                token=access_token,
                params={"types": types, "limit": "100"},
            )
            if not data.get("ok"):
                error = str(data.get("error") or "unknown_error")
                raise ProviderError(f"conversations.list failed: {error}", code=error)
            for raw in data.get("channels") or []:
                channels.append(
                    Channel(
                        id=raw["id"],
                        name=raw.get("name") or f"DM-{raw['id']}",
                        is_private=bool(raw.get("is_private")),
                        is_im=bool(raw.get("is_im")),
                        is_mpim=bool(raw.get("is_mpim")),
                    )
                )
        return channels

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        token: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        url = f"{self._api_base_url}/{endpoint}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("slack_request_timeout", extra={"slack.endpoint": endpoint})
            raise ProviderError(f"Slack {endpoint} timed out", code="timeout") from e
        except httpx.HTTPError as e:
            logger.warning(
                "slack_request_failed",
                extra={"slack.endpoint": endpoint, "error.message": str(e)},
            )
            raise ProviderError(f"Slack {endpoint} failed: {e}", code="transport_error") from e

        if response.status_code != 200:
            logger.error(
                "slack_http_error",
                extra={"slack.endpoint": endpoint, "http.status": response.status_code},
            )
            raise ProviderError(
                f"Slack {endpoint} returned HTTP {response.status_code}",
                code=f"http_{response.status_code}",
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                f"Slack {endpoint} returned invalid JSON", code="invalid_response"
            ) from e
        if not isinstance(data, dict):
            raise ProviderError(
                f"Slack {endpoint} returned invalid JSON", code="invalid_response"
            )
        return data


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None

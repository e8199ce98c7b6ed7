"""Slack API result types."""

from dataclasses import dataclass
from typing import Protocol


@dataclass
class TokenGrant:
    """Result of an OAuth code or refresh-token exchange."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None  # Seconds from now
    workspace_id: str | None = None
    workspace_name: str | None = None
    user_id: str | None = None


@dataclass
class SendResult:
    """Outcome of chat.postMessage."""

    ok: bool
    message_id: str | None = None  # Slack message ``ts``
    error: str | None = None


@dataclass
class Channel:
    """A conversation the user can post to."""

    id: str
    name: str
    is_private: bool = False
    is_im: bool = False
    is_mpim: bool = False


class SlackAPI(Protocol):
    """Capabilities the core needs from Slack."""

    async def exchange_code(self, code: str) -> TokenGrant: ...

    async def exchange_refresh_token(self, refresh_token: str) -> TokenGrant: ...

    async def send_message(
        self, access_token: str, channel_id: str, text: str
    ) -> SendResult: ...

    async def list_channels(self, access_token: str) -> list[Channel]: ...

"""Credential manager: hands out valid Slack tokens, refreshing on read.

Refresh happens lazily inside get_valid_token() rather than in a background
loop, so callers never see a token that is stale at the moment of use.
"""

import asyncio
import logging
import time
import weakref
from collections.abc import Callable

from relay.credentials.store import CredentialStore
from relay.credentials.types import Credential
from relay.errors import NoRefreshTokenError, NotFoundError, ProviderError
from relay.slack.types import SlackAPI, TokenGrant

logger = logging.getLogger(__name__)

# Refresh tokens 5 minutes before expiry
TOKEN_REFRESH_BUFFER_SECONDS = 300


class CredentialManager:
    """Produces currently-valid access tokens for (workspace, user) pairs."""

    def __init__(
        self,
        store: CredentialStore,
        slack: SlackAPI,
        refresh_buffer_seconds: float = TOKEN_REFRESH_BUFFER_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._slack = slack
        self._buffer = refresh_buffer_seconds
        self._clock = clock
        # Entries disappear once no caller holds the lock
        self._locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def store(self) -> CredentialStore:
        return self._store

    async def authorize(self, code: str) -> TokenGrant:
        """Complete an OAuth install: exchange ``code`` and persist the grant.

        Raises:
            ProviderError: If Slack rejects the code.
        """
        grant = await self._slack.exchange_code(code)
        if not grant.workspace_id or not grant.user_id:
            raise ProviderError("OAuth grant missing team or user id")
        await self._store.save(
            Credential(
                workspace_id=grant.workspace_id,
                user_id=grant.user_id,
                access_token=grant.access_token,
                refresh_token=grant.refresh_token,
                expires_at=self._expiry(grant),
            )
        )
        logger.info(
            "slack_authorized",
            extra={
                "slack.workspace_id": grant.workspace_id,
                "slack.workspace_name": grant.workspace_name,
                "slack.user_id": grant.user_id,
            },
        )
        return grant

    async def get_valid_token(self, workspace_id: str, user_id: str) -> str:
        """Return an access token that will not expire within the buffer.

        Raises:
            NotFoundError: If the pair never authorized.
            NoRefreshTokenError: If the token is stale and cannot be refreshed.
            ProviderError: If Slack rejects the refresh.
        """
        credential = await self._require(workspace_id, user_id)
        if not credential.expires_within(self._buffer, self._clock()):
            return credential.access_token

        async with self._lock_for(workspace_id, user_id):
            # Another caller may have refreshed while we waited
            credential = await self._require(workspace_id, user_id)
            if not credential.expires_within(self._buffer, self._clock()):
                return credential.access_token
            return await self._refresh(credential)

    async def refresh(self, workspace_id: str, user_id: str) -> str:
        """Force a refresh and return the new access token.

        Raises:
            NotFoundError: If the pair never authorized.
            NoRefreshTokenError: If no refresh token is stored.
            ProviderError: If Slack rejects the refresh.
        """
        async with self._lock_for(workspace_id, user_id):
            credential = await self._require(workspace_id, user_id)
            return await self._refresh(credential)

    async def _refresh(self, credential: Credential) -> str:
        if not credential.refresh_token:
            raise NoRefreshTokenError(
                f"No refresh token for workspace {credential.workspace_id} "
                f"user {credential.user_id}"
            )

        logger.info(
            "token_refreshing",
            extra={
                "slack.workspace_id": credential.workspace_id,
                "slack.user_id": credential.user_id,
                "token.expires_at": credential.expires_at,
            },
        )
        try:
            grant = await self._slack.exchange_refresh_token(credential.refresh_token)
        except ProviderError:
            logger.warning(
                "token_refresh_failed",
                extra={
                    "slack.workspace_id": credential.workspace_id,
                    "slack.user_id": credential.user_id,
                },
            )
            raise

        updated = await self._store.update(
            credential.workspace_id,
            credential.user_id,
            access_token=grant.access_token,
            # Keep the old refresh token unless Slack rotated it
            refresh_token=grant.refresh_token or credential.refresh_token,
            expires_at=self._expiry(grant),
        )
        logger.info(
            "token_refreshed",
            extra={
                "slack.workspace_id": credential.workspace_id,
                "slack.user_id": credential.user_id,
                "token.expires_at": updated.expires_at,
            },
        )
        return updated.access_token

    async def _require(self, workspace_id: str, user_id: str) -> Credential:
        credential = await self._store.get(workspace_id, user_id)
        if credential is None:
            raise NotFoundError(
                f"No credential for workspace {workspace_id} user {user_id}"
            )
        return credential

    def _lock_for(self, workspace_id: str, user_id: str) -> asyncio.Lock:
        key = (workspace_id, user_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def _expiry(self, grant: TokenGrant) -> int | None:
        if grant.expires_in is None:
            return None
        return int(self._clock()) + grant.expires_in

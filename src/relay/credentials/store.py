"""Durable storage for Slack credentials."""

from __future__ import annotations

import logging
from typing import Any, Final

from sqlalchemy import select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from relay.credentials.types import Credential
from relay.db.engine import Database
from relay.db.models import SlackCredential, utc_now
from relay.errors import NotFoundError, StorageError, ValidationError

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Final = _Unset()


class CredentialStore:
    """SQLite-backed mapping of (workspace, user) to an access grant.

    Rows are never deleted; refresh mutates them in place.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    async def save(self, credential: Credential) -> Credential:
        """Insert or replace the credential for its (workspace, user) pair.

        Raises:
            ValidationError: If access token, workspace id or user id is empty.
        """
        if not credential.access_token:
            raise ValidationError("access_token is required")
        if not credential.workspace_id:
            raise ValidationError("workspace_id is required")
        if not credential.user_id:
            raise ValidationError("user_id is required")

        now = utc_now()
        values = {
            "workspace_id": credential.workspace_id,
            "user_id": credential.user_id,
            "access_token": credential.access_token,
            "refresh_token": credential.refresh_token,
            "expires_at": credential.expires_at,
            "updated_at": now,
        }
        stmt = sqlite_insert(SlackCredential).values(created_at=now, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["workspace_id", "user_id"],
            set_={
                "access_token": stmt.excluded.access_token,
                "refresh_token": stmt.excluded.refresh_token,
                "expires_at": stmt.excluded.expires_at,
                "updated_at": stmt.excluded.updated_at,
            },
        )

        async with self._db.session() as session:
            await session.execute(stmt)
            row = await self._select(session, credential.workspace_id, credential.user_id)

        if row is None:
            raise StorageError(
                f"Credential for workspace {credential.workspace_id} "
                f"user {credential.user_id} vanished after save"
            )
        logger.info(
            "credential_saved",
            extra={
                "slack.workspace_id": credential.workspace_id,
                "slack.user_id": credential.user_id,
            },
        )
        return row

    async def get(self, workspace_id: str, user_id: str) -> Credential | None:
        async with self._db.session() as session:
            return await self._select(session, workspace_id, user_id)

    async def update(
        self,
        workspace_id: str,
        user_id: str,
        *,
        access_token: str | None = None,
        refresh_token: str | None = None,
        expires_at: int | None | _Unset = UNSET,
    ) -> Credential:
        """Patch the supplied fields and bump ``updated_at``.

        ``access_token`` and ``refresh_token`` are left alone when None.
        ``expires_at`` is left alone when omitted; passing None clears it.

        Raises:
            NotFoundError: If no credential exists for the pair.
            ValidationError: If ``access_token`` is given but empty.
        """
        values: dict[str, Any] = {"updated_at": utc_now()}
        if access_token is not None:
            if not access_token:
                raise ValidationError("access_token cannot be empty")
            values["access_token"] = access_token
        if refresh_token is not None:
            values["refresh_token"] = refresh_token
        if not isinstance(expires_at, _Unset):
            values["expires_at"] = expires_at

        stmt = (
            update(SlackCredential)
            .where(
                SlackCredential.workspace_id == workspace_id,
                SlackCredential.user_id == user_id,
            )
            .values(**values)
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise NotFoundError(
                    f"No credential for workspace {workspace_id} user {user_id}"
                )
            row = await self._select(session, workspace_id, user_id)

        if row is None:
            raise StorageError(
                f"Credential for workspace {workspace_id} user {user_id} "
                "vanished after update"
            )
        return row

    async def _select(self, session, workspace_id: str, user_id: str) -> Credential | None:
        result = await session.execute(
            select(SlackCredential).where(
                SlackCredential.workspace_id == workspace_id,
                SlackCredential.user_id == user_id,
            )
        )
        row = result.scalar_one_or_none()
        return Credential.from_row(row) if row is not None else None

"""Slack token storage and lifecycle.

Public API:
- CredentialStore: SQLite-backed upsert/get/update of access grants
- CredentialManager: Valid-token lookup with transparent refresh

Types:
- Credential: One (workspace, user) access grant
"""

from relay.credentials.manager import TOKEN_REFRESH_BUFFER_SECONDS, CredentialManager
from relay.credentials.store import UNSET, CredentialStore
from relay.credentials.types import Credential

__all__ = [
    "Credential",
    "CredentialManager",
    "CredentialStore",
    "TOKEN_REFRESH_BUFFER_SECONDS",
    "UNSET",
]

"""Error taxonomy shared by the credential and delivery subsystems."""


class RelayError(Exception):
    """Base class for all relay errors."""


class ValidationError(RelayError):
    """Bad or missing input. Never retried."""


class NotFoundError(RelayError):
    """No matching credential or delivery."""


class NoRefreshTokenError(RelayError):
    """Stored credential has no refresh token, so it cannot self-heal."""


class ProviderError(RelayError):
    """The Slack API rejected a call, timed out, or was unreachable."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code or message


class StorageError(RelayError):
    """The durable store failed. Fatal to the current operation only."""

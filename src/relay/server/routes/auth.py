"""Slack OAuth routes."""

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from relay.config.models import ConfigError
from relay.errors import RelayError
from relay.runtime import Runtime
from relay.server.deps import get_runtime
from relay.slack.client import SlackClient

router = APIRouter()
logger = logging.getLogger(__name__)


class RefreshRequest(BaseModel):
    team_id: str
    user_id: str


def _frontend_redirect(runtime: Runtime, page: str, **params: str) -> RedirectResponse:
    base = runtime.config.server.frontend_url.rstrip("/")
    return RedirectResponse(f"{base}/{page}?{urlencode(params)}", status_code=302)


@router.get("/slack")
async def slack_install_url(
    state: str | None = None, runtime: Runtime = Depends(get_runtime)
) -> dict[str, str | bool]:
    """Return the Slack OAuth authorize URL the browser should visit."""
    if not isinstance(runtime.slack, SlackClient):
        raise ConfigError("Slack client does not support OAuth install")
    return {"success": True, "install_url": runtime.slack.build_install_url(state)}


@router.get("/slack/callback")
async def slack_callback(
    code: str | None = None,
    error: str | None = None,
    runtime: Runtime = Depends(get_runtime),
) -> RedirectResponse:
    """Finish the OAuth install and bounce back to the frontend."""
    if error:
        logger.info("oauth_denied", extra={"error.message": error})
        return _frontend_redirect(runtime, "auth-error", error=error)
    if not code:
        return _frontend_redirect(runtime, "auth-error", error="missing_code")

    try:
        grant = await runtime.credentials.authorize(code)
    except (RelayError, ConfigError) as e:
        logger.warning(
            "oauth_failed",
            extra={"error.type": type(e).__name__, "error.message": str(e)},
        )
        return _frontend_redirect(runtime, "auth-error", error="oauth_failed")

    return _frontend_redirect(
        runtime,
        "auth-success",
        success="true",
        team_id=grant.workspace_id or "",
        team_name=grant.workspace_name or "",
        user_id=grant.user_id or "",
    )


@router.get("/status")
async def auth_status(
    team_id: str = Query(...),
    user_id: str = Query(...),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, str | bool]:
    credential = await runtime.credential_store.get(team_id, user_id)
    return {
        "success": True,
        "authenticated": credential is not None,
        "team_id": team_id,
        "user_id": user_id,
    }


@router.post("/refresh")
async def refresh_token(
    body: RefreshRequest, runtime: Runtime = Depends(get_runtime)
) -> dict[str, str | bool]:
    """Force a token refresh for the given workspace user."""
    await runtime.credentials.refresh(body.team_id, body.user_id)
    return {"success": True, "message": "Token refreshed"}

"""Health check routes."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
@router.get("/api/health")
async def health_check(request: Request) -> dict[str, str | bool]:
    """Health check endpoint.

    Returns:
        Health status and whether the delivery watcher is running.
    """
    runtime = request.app.state.runtime
    return {"status": "healthy", "scheduler_running": runtime.watcher.is_running}

"""Request dependencies."""

from fastapi import Request

from relay.runtime import Runtime


async def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime

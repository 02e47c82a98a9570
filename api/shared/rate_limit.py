"""Write-endpoint rate limiting keyed by client address."""
import logging

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from starlette.requests import Request

from api.shared.exceptions import RateLimitExceededError
from di.container import ApplicationContainer
from infra.resources import RateLimiterResource

logger = logging.getLogger("agrichat.rate_limit")


def client_address(request: Request) -> str:
    """Best-effort client address; honours the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@inject
async def enforce_write_limit(
    request: Request,
    limiter: RateLimiterResource = Depends(
        Provide[ApplicationContainer.infrastructure.rate_limiter]
    ),
) -> None:
    """Reject the request before it is processed once the client's window is full."""
    address = client_address(request)
    if not limiter.hit(address):
        logger.warning("Rate limit exceeded for %s on %s %s", address, request.method, request.url.path)
        raise RateLimitExceededError(address, retry_after=limiter.retry_after(address))

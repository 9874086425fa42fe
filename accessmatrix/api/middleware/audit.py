"""Audit logging middleware for FastAPI.

Logs every mutating API request with:
- Acting user (from the X-User-Id header)
- Action performed (HTTP method mapped to an action name)
- Household the request targets
- Response status
- Duration
"""

import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from accessmatrix.common.logger import get_logger

logger = get_logger("audit")


# Map HTTP methods to action names
METHOD_TO_ACTION = {
    "POST": "create",
    "PUT": "update",
    "PATCH": "update",
    "DELETE": "delete",
}

# Paths that should not be logged (health checks, docs)
EXCLUDED_PATHS = {
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
}


def extract_household_id(path: str) -> Optional[str]:
    """Return the household id from an ``/api/households/{id}/...`` path."""
    parts = [p for p in path.strip("/").split("/") if p]
    if parts and parts[0] == "api":
        parts = parts[1:]
    if len(parts) > 1 and parts[0] == "households":
        return parts[1]
    return None


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # Take the first IP (original client)
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


class AuditMiddleware(BaseHTTPMiddleware):
    """
    Middleware that writes one audit log line per mutating request.

    Reads are not audited.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        action = METHOD_TO_ACTION.get(request.method)
        if action is None or request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        response = await call_next(request)

        duration_ms = int((time.time() - start_time) * 1000)
        message = (
            f"[{request_id}] {action} {request.method} {request.url.path} "
            f"user={request.headers.get('x-user-id', '-')} "
            f"household={extract_household_id(request.url.path) or '-'} "
            f"ip={get_client_ip(request)} status={response.status_code} duration={duration_ms}ms"
        )
        if response.status_code >= 500:
            logger.error(message)
        elif response.status_code >= 400:
            logger.warning(message)
        else:
            logger.info(message)

        response.headers["X-Request-ID"] = request_id
        return response

"""Audit logging middleware — records every state-changing request to audit_trail."""


import asyncio
import logging
import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from onboarding.domain.audit import AuditTrail

logger = logging.getLogger(__name__)

# Methods that mutate state
_WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
_ENTITY_SEGMENTS = {"merchants", "documents", "reviews"}


def describe_path(path: str) -> tuple[str, str | None, str]:
    """Return ``(entity_type, entity_id, action)`` for an API path.

    ``/api/v1/merchants/<id>/verify`` -> ``("merchant", "<id>", "verify")``;
    ``/api/v1/merchants/bulk-verify`` -> ``("merchant", None, "bulk-verify")``.
    """
    parts = [p for p in path.strip("/").split("/") if p]
    for index, part in enumerate(parts):
        if part in _ENTITY_SEGMENTS:
            rest = parts[index + 1:]
            entity_type = part.rstrip("s")
            if rest and len(rest[0]) == 36:
                return entity_type, rest[0], "/".join(rest[1:]) or "update"
            return entity_type, None, "/".join(rest) or "create"
    return (parts[-1] if parts else "unknown"), None, "request"


class AuditMiddleware(BaseHTTPMiddleware):
    """Logs all write operations.

    Each audit row is written asynchronously AFTER the response is sent so it
    never adds latency to the request. Failures in audit logging are caught and
    logged; they never raise to the caller.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000)

        settings = getattr(request.app.state, "settings", None)
        if request.method in _WRITE_METHODS and settings is not None and settings.audit_requests:
            # Fire-and-forget: don't await here so the response is not delayed
            asyncio.create_task(
                self._record(request, response.status_code, duration_ms)
            )

        return response

    async def _record(
        self, request: Request, status_code: int, duration_ms: int
    ) -> None:
        """Persist an audit row. Swallows all errors to avoid cascading failures."""
        try:
            settings = request.app.state.settings
            entity_type, entity_id, action = describe_path(request.url.path)

            async with request.app.state.db.session_factory() as session:
                session.add(
                    AuditTrail(
                        client_id=settings.default_client_id,
                        actor_id=request.headers.get("x-actor-id"),
                        actor_role=request.headers.get("x-actor-role"),
                        ip_address=request.client.host if request.client else None,
                        user_agent=request.headers.get("user-agent"),
                        action=f"{request.method}:{action}",
                        entity_type=entity_type,
                        entity_id=entity_id,
                        status_code=status_code,
                        duration_ms=duration_ms,
                        description=f"{request.method} {request.url.path} -> {status_code} ({duration_ms}ms)",
                    )
                )
                await session.commit()
        except Exception:  # pragma: no cover
            logger.exception("Failed to record audit row for %s %s", request.method, request.url.path)

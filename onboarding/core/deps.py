"""Request-scoped dependencies: caller identity and shared collaborators.

Authentication happens upstream (API gateway); the gateway forwards the
verified caller as ``X-Actor-Id`` / ``X-Actor-Role`` headers. This service
only authorizes.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, Header, Request

from onboarding.core.config import Settings
from onboarding.core.exceptions import ForbiddenError, UnauthorizedError
from onboarding.services.notifications import NotificationDispatcher
from onboarding.services.storage import LocalObjectStorage

logger = logging.getLogger(__name__)


class ActorRole(str, Enum):
    ADMIN = "admin"
    MERCHANT = "merchant"
    CUSTOMER = "customer"


@dataclass(frozen=True)
class Actor:
    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN.value

    def can_access_merchant(self, merchant_id: str) -> bool:
        return self.is_admin or (self.role == ActorRole.MERCHANT.value and self.id == merchant_id)


async def get_actor(
    x_actor_id: str | None = Header(default=None, description="Authenticated caller id"),
    x_actor_role: str | None = Header(default=None, description="admin | merchant | customer"),
) -> Actor:
    if not x_actor_id or not x_actor_id.strip():
        raise UnauthorizedError("Missing X-Actor-Id header")
    role = (x_actor_role or ActorRole.CUSTOMER.value).strip().lower()
    if role not in {r.value for r in ActorRole}:
        logger.warning("Rejected unknown actor role: %s", role)
        raise ForbiddenError(f"Unknown actor role '{role}'")
    return Actor(id=x_actor_id.strip(), role=role)


async def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_admin:
        raise ForbiddenError("Admin access required")
    return actor


def ensure_merchant_access(actor: Actor, merchant_id: str) -> None:
    """Admins can reach any merchant; a merchant only itself."""
    if not actor.can_access_merchant(merchant_id):
        raise ForbiddenError("You can only access your own merchant account")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> LocalObjectStorage:
    return request.app.state.storage


def get_notifier(request: Request) -> NotificationDispatcher:
    return request.app.state.notifier

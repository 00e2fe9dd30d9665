"""Notification dispatch collaborator.

Services describe *what* must reach a merchant (recipient, template key,
template context) and hand it to a dispatcher; delivery (email, SMS) is the
dispatcher's business. The default dispatcher only logs, which is what local
development and tests want.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)

CREDENTIALS_TEMPLATE = "merchant_credentials"
SETUP_COMPLETE_TEMPLATE = "merchant_setup_complete"
PASSWORD_RESET_TEMPLATE = "merchant_password_reset"


@dataclass(frozen=True)
class Notification:
    recipient: str
    template_key: str
    context: dict[str, Any] = field(default_factory=dict)


class NotificationDispatcher(Protocol):
    async def dispatch(self, notification: Notification) -> None: ...


class LoggingNotificationDispatcher:
    """Logs the delivery instead of sending it. Token values are never logged."""

    async def dispatch(self, notification: Notification) -> None:
        logger.info(
            "Notification '%s' queued for %s (context keys: %s)",
            notification.template_key,
            notification.recipient,
            ", ".join(sorted(notification.context)),
        )


async def dispatch_safely(dispatcher: NotificationDispatcher, notification: Notification) -> bool:
    """Deliver a notification; a delivery failure must not undo the business write."""
    try:
        await dispatcher.dispatch(notification)
        return True
    except Exception:
        logger.exception(
            "Failed to dispatch '%s' to %s", notification.template_key, notification.recipient
        )
        return False

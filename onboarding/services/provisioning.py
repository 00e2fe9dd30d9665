"""Merchant account provisioning — admin creation, self-registration, setup and reset tokens.

The service never sends email: it emits notifications (recipient, template
key, token) through the injected dispatcher and returns the credentials to
the caller. Setup and reset tokens are single-use and time-limited; only
their SHA-256 digests are stored.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from onboarding.core.config import Settings
from onboarding.core.exceptions import (
    ConflictError,
    NotFoundError,
    TokenExpiredError,
    TokenInvalidError,
    ValidationError,
)
from onboarding.core.security import (
    MIN_PASSWORD_LENGTH,
    generate_token,
    hash_password,
    hash_token,
    is_expired,
    token_expiry,
)
from onboarding.domain.history import HistoryAction
from onboarding.domain.merchant import Merchant, OnboardingStatus
from onboarding.domain.mixins import utcnow
from onboarding.repositories.history import VerificationHistoryRepository
from onboarding.repositories.merchant import MerchantRepository
from onboarding.schemas.merchant import (
    MerchantAdminCreate,
    MerchantProfileFields,
    MerchantProfileUpdate,
    MerchantRegister,
    SetupCompleteRequest,
)
from onboarding.services import completeness
from onboarding.services.notifications import (
    CREDENTIALS_TEMPLATE,
    PASSWORD_RESET_TEMPLATE,
    SETUP_COMPLETE_TEMPLATE,
    Notification,
    NotificationDispatcher,
    dispatch_safely,
)
from onboarding.services.verification import VerificationStateMachine

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")

DEFAULT_BUSINESS_HOURS: dict[str, dict[str, Any]] = {
    "monday": {"open": "09:00", "close": "18:00", "closed": False},
    "tuesday": {"open": "09:00", "close": "18:00", "closed": False},
    "wednesday": {"open": "09:00", "close": "18:00", "closed": False},
    "thursday": {"open": "09:00", "close": "18:00", "closed": False},
    "friday": {"open": "09:00", "close": "18:00", "closed": False},
    "saturday": {"open": "09:00", "close": "16:00", "closed": False},
    "sunday": {"open": "10:00", "close": "16:00", "closed": True},
}

# Scored and editable profile columns; everything else on Merchant is system-managed
_PROFILE_FIELDS = set(MerchantProfileFields.model_fields)


@dataclass
class ProvisionedMerchant:
    merchant: Merchant
    setup_token: str
    setup_url: str
    setup_expires_at: datetime


def _clean_profile(data: MerchantProfileFields, *, exclude_unset: bool = False) -> dict[str, Any]:
    values = data.model_dump(include=_PROFILE_FIELDS, exclude_unset=exclude_unset)
    cleaned: dict[str, Any] = {}
    for name, value in values.items():
        if isinstance(value, str):
            value = value.strip()
        cleaned[name] = value
    if cleaned.get("email"):
        cleaned["email"] = cleaned["email"].lower()
    return cleaned


def _validate_password(password: str | None) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            fields=["password"],
        )
    return password


class AccountProvisioningService:
    def __init__(
        self,
        session: AsyncSession,
        client_id: str,
        settings: Settings,
        notifier: NotificationDispatcher,
    ):
        self._repo = MerchantRepository(session, client_id)
        self._history = VerificationHistoryRepository(session, client_id)
        self._state_machine = VerificationStateMachine(session, client_id)
        self._settings = settings
        self._notifier = notifier

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    async def _validate_new_profile(self, profile: dict[str, Any]) -> None:
        missing = completeness.missing_profile_fields(profile)
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}", fields=missing
            )
        if not _EMAIL_RE.match(profile["email"]):
            raise ValidationError("Please add a valid email", fields=["email"])
        if await self._repo.get_by_email(profile["email"]):
            raise ConflictError("A merchant with this email already exists")

    async def _get_by_setup_token(self, token: str) -> Merchant:
        merchant = await self._repo.get_by_setup_token(hash_token(token))
        if not merchant:
            raise TokenInvalidError("Invalid setup token")
        if is_expired(merchant.setup_token_expires_at):
            raise TokenExpiredError("Setup token has expired")
        return merchant

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_by_admin(
        self, data: MerchantAdminCreate, actor_id: str | None
    ) -> ProvisionedMerchant:
        profile = _clean_profile(data)
        await self._validate_new_profile(profile)
        if not profile.get("business_hours"):
            profile["business_hours"] = DEFAULT_BUSINESS_HOURS

        token = generate_token()
        expires_at = token_expiry(timedelta(hours=self._settings.setup_token_ttl_hours))
        merchant = self._repo.add(
            id=str(uuid.uuid4()),
            **profile,
            onboarding_status=OnboardingStatus.CREDENTIALS_SENT.value,
            setup_token_hash=hash_token(token),
            setup_token_expires_at=expires_at,
            created_by_admin=True,
            created_by_admin_id=actor_id,
        )

        if data.auto_verify:
            # Explicit escape hatch: document requirements are bypassed, and recorded as such
            merchant.verified = True
            merchant.verified_at = utcnow()
            reason = (data.auto_verify_reason or "").strip() or "no reason given"
            self._history.append(
                merchant.id,
                HistoryAction.APPROVED.value,
                performed_by=actor_id,
                notes=f"Auto-verified at account creation; document requirements bypassed ({reason})",
            )
            logger.warning(
                "Merchant %s auto-verified by %s without documents", merchant.id, actor_id
            )

        await self._state_machine.save(merchant, actor_id)
        setup_url = self._settings.setup_url(token)
        await dispatch_safely(
            self._notifier,
            Notification(
                recipient=merchant.email,
                template_key=CREDENTIALS_TEMPLATE,
                context={
                    "business_name": merchant.business_name,
                    "setup_token": token,
                    "setup_url": setup_url,
                    "setup_expires_at": expires_at.isoformat(),
                    "verified": merchant.verified,
                },
            ),
        )
        logger.info("Admin %s created merchant %s", actor_id, merchant.email)
        return ProvisionedMerchant(
            merchant=merchant,
            setup_token=token,
            setup_url=setup_url,
            setup_expires_at=expires_at,
        )

    async def register(self, data: MerchantRegister) -> Merchant:
        """Self-registration: the merchant chooses a password up front."""
        profile = _clean_profile(data)
        await self._validate_new_profile(profile)
        password = _validate_password(data.password)

        merchant = self._repo.add(
            id=str(uuid.uuid4()),
            **profile,
            password_hash=hash_password(password),
            onboarding_status=OnboardingStatus.ACCOUNT_SETUP.value,
            account_setup_at=utcnow(),
        )
        await self._state_machine.save(merchant, merchant.id)
        logger.info("Merchant %s self-registered", merchant.email)
        return merchant

    # ------------------------------------------------------------------
    # Account setup
    # ------------------------------------------------------------------

    async def get_setup_info(self, token: str) -> Merchant:
        return await self._get_by_setup_token(token)

    async def complete_setup(self, token: str, data: SetupCompleteRequest) -> Merchant:
        merchant = await self._get_by_setup_token(token)
        password = _validate_password(data.password)

        merchant.password_hash = hash_password(password)
        merchant.setup_token_hash = None
        merchant.setup_token_expires_at = None
        merchant.onboarding_status = OnboardingStatus.ACCOUNT_SETUP.value
        merchant.account_setup_at = utcnow()

        updates = data.model_dump(include={"business_hours", "description", "website"}, exclude_none=True)
        for name, value in updates.items():
            setattr(merchant, name, value.strip() if isinstance(value, str) else value)

        await self._state_machine.save(merchant, merchant.id)
        await dispatch_safely(
            self._notifier,
            Notification(
                recipient=merchant.email,
                template_key=SETUP_COMPLETE_TEMPLATE,
                context={"business_name": merchant.business_name},
            ),
        )
        logger.info("Merchant %s completed account setup", merchant.id)
        return merchant

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    async def request_password_reset(self, email: str) -> Merchant:
        merchant = await self._repo.get_by_email(email)
        if not merchant:
            raise NotFoundError("Merchant", email.strip().lower())

        token = generate_token()
        expires_at = token_expiry(timedelta(minutes=self._settings.reset_token_ttl_minutes))
        merchant.reset_token_hash = hash_token(token)
        merchant.reset_token_expires_at = expires_at
        await self._state_machine.save(merchant, merchant.id)
        await dispatch_safely(
            self._notifier,
            Notification(
                recipient=merchant.email,
                template_key=PASSWORD_RESET_TEMPLATE,
                context={
                    "reset_token": token,
                    "reset_url": self._settings.reset_url(token),
                    "reset_expires_at": expires_at.isoformat(),
                },
            ),
        )
        return merchant

    async def reset_password(self, token: str, password: str | None) -> Merchant:
        merchant = await self._repo.get_by_reset_token(hash_token(token))
        if not merchant:
            raise TokenInvalidError("Invalid reset token")
        if is_expired(merchant.reset_token_expires_at):
            raise TokenExpiredError("Reset token has expired")

        merchant.password_hash = hash_password(_validate_password(password))
        merchant.reset_token_hash = None
        merchant.reset_token_expires_at = None
        await self._state_machine.save(merchant, merchant.id)
        logger.info("Merchant %s reset their password", merchant.id)
        return merchant

    # ------------------------------------------------------------------
    # Profile edits
    # ------------------------------------------------------------------

    async def update_profile(
        self, merchant_id: str, data: MerchantProfileUpdate, actor_id: str | None
    ) -> Merchant:
        merchant = await self._state_machine.get_merchant(merchant_id)
        if data.expected_version is not None and data.expected_version != merchant.version:
            raise ConflictError(
                f"Merchant '{merchant_id}' is at version {merchant.version}, "
                f"not {data.expected_version}; reload and retry"
            )

        changes = _clean_profile(data, exclude_unset=True)
        # Required fields can be edited but not cleared
        cleared = [
            name
            for name in completeness.REQUIRED_PROFILE_FIELDS
            if name in changes and not completeness.is_filled(changes[name])
        ]
        if cleared:
            raise ValidationError(
                f"Required fields cannot be empty: {', '.join(cleared)}", fields=cleared
            )
        if "email" in changes and changes["email"] != merchant.email:
            if not _EMAIL_RE.match(changes["email"]):
                raise ValidationError("Please add a valid email", fields=["email"])
            if await self._repo.get_by_email(changes["email"]):
                raise ConflictError("A merchant with this email already exists")

        for name, value in changes.items():
            setattr(merchant, name, value)
        await self._state_machine.save(merchant, actor_id)
        return merchant

"""Tests for account provisioning: admin creation, setup tokens, registration, resets."""

from datetime import timedelta

import pytest

from conftest import FailingNotifier, profile_payload
from onboarding.core.exceptions import (
    ConflictError,
    NotFoundError,
    TokenExpiredError,
    TokenInvalidError,
    ValidationError,
)
from onboarding.core.security import hash_token, verify_password
from onboarding.domain.merchant import OnboardingStatus
from onboarding.domain.mixins import ensure_utc, utcnow
from onboarding.schemas.merchant import (
    MerchantAdminCreate,
    MerchantProfileUpdate,
    MerchantRegister,
    SetupCompleteRequest,
)
from onboarding.services.notifications import (
    CREDENTIALS_TEMPLATE,
    PASSWORD_RESET_TEMPLATE,
    SETUP_COMPLETE_TEMPLATE,
)
from onboarding.services.provisioning import DEFAULT_BUSINESS_HOURS, AccountProvisioningService
from onboarding.services.verification import VerificationStateMachine


@pytest.fixture
def service(session, settings, notifier):
    return AccountProvisioningService(session, settings.default_client_id, settings, notifier)


@pytest.mark.asyncio
async def test_admin_create_issues_setup_credentials(service, session, notifier, settings):
    provisioned = await service.create_by_admin(MerchantAdminCreate(**profile_payload()), "admin-1")
    await session.commit()
    merchant = provisioned.merchant

    assert merchant.onboarding_status == OnboardingStatus.CREDENTIALS_SENT.value
    assert merchant.created_by_admin is True
    assert merchant.created_by_admin_id == "admin-1"
    assert merchant.verified is False
    assert merchant.business_hours == DEFAULT_BUSINESS_HOURS
    assert merchant.profile_completeness == 78  # 70 + 30 * 1/4 (business hours) = 77.5
    assert merchant.documents_completeness == 0
    # Only the digest is stored
    assert merchant.setup_token_hash == hash_token(provisioned.setup_token)
    assert provisioned.setup_token not in (merchant.setup_token_hash or "")
    assert provisioned.setup_url.endswith(f"/merchant/account-setup/{provisioned.setup_token}")
    remaining = provisioned.setup_expires_at - utcnow()
    assert timedelta(hours=167) < remaining <= timedelta(hours=settings.setup_token_ttl_hours)

    sent = notifier.last(CREDENTIALS_TEMPLATE)
    assert sent.recipient == "owner@bluedoor.example.com"
    assert sent.context["setup_token"] == provisioned.setup_token


@pytest.mark.asyncio
async def test_admin_create_names_missing_fields(service):
    payload = profile_payload()
    del payload["phone"]
    payload["address"] = "   "

    with pytest.raises(ValidationError) as exc_info:
        await service.create_by_admin(MerchantAdminCreate(**payload), "admin-1")

    assert exc_info.value.fields == ["phone", "address"]


@pytest.mark.asyncio
async def test_admin_create_rejects_bad_email(service):
    with pytest.raises(ValidationError):
        await service.create_by_admin(
            MerchantAdminCreate(**profile_payload(email="not-an-email")), "admin-1"
        )


@pytest.mark.asyncio
async def test_duplicate_email_is_a_conflict(service, session):
    await service.create_by_admin(MerchantAdminCreate(**profile_payload()), "admin-1")
    await session.commit()

    with pytest.raises(ConflictError):
        await service.create_by_admin(
            MerchantAdminCreate(**profile_payload(email="OWNER@bluedoor.example.com")), "admin-1"
        )


@pytest.mark.asyncio
async def test_auto_verify_is_recorded(service, session, settings):
    provisioned = await service.create_by_admin(
        MerchantAdminCreate(**profile_payload(), autoVerify=True, autoVerifyReason="Trusted partner"),
        "admin-1",
    )
    await session.commit()
    machine = VerificationStateMachine(session, settings.default_client_id)

    history = await machine.history(provisioned.merchant.id)

    assert provisioned.merchant.verified is True
    assert [entry.action for entry in history] == ["approved"]
    assert "bypassed" in history[0].notes
    assert "Trusted partner" in history[0].notes


@pytest.mark.asyncio
async def test_notification_failure_does_not_undo_creation(session, settings):
    service = AccountProvisioningService(
        session, settings.default_client_id, settings, FailingNotifier()
    )
    provisioned = await service.create_by_admin(MerchantAdminCreate(**profile_payload()), "admin-1")
    await session.commit()

    assert provisioned.merchant.id is not None


@pytest.mark.asyncio
async def test_complete_setup(service, session, notifier):
    provisioned = await service.create_by_admin(MerchantAdminCreate(**profile_payload()), "admin-1")
    await session.commit()

    info = await service.get_setup_info(provisioned.setup_token)
    assert info.id == provisioned.merchant.id

    merchant = await service.complete_setup(
        provisioned.setup_token,
        SetupCompleteRequest(password="correct horse", website="https://bluedoor.example.com"),
    )
    await session.commit()

    assert merchant.onboarding_status == OnboardingStatus.ACCOUNT_SETUP.value
    assert merchant.account_setup_at is not None
    assert merchant.setup_token_hash is None
    assert verify_password("correct horse", merchant.password_hash)
    assert merchant.website == "https://bluedoor.example.com"
    assert notifier.last(SETUP_COMPLETE_TEMPLATE).recipient == merchant.email

    # Single use
    with pytest.raises(TokenInvalidError):
        await service.get_setup_info(provisioned.setup_token)


@pytest.mark.asyncio
async def test_expired_setup_token(service, session):
    provisioned = await service.create_by_admin(MerchantAdminCreate(**profile_payload()), "admin-1")
    provisioned.merchant.setup_token_expires_at = utcnow() - timedelta(minutes=1)
    await session.commit()

    with pytest.raises(TokenExpiredError):
        await service.get_setup_info(provisioned.setup_token)
    with pytest.raises(TokenExpiredError):
        await service.complete_setup(provisioned.setup_token, SetupCompleteRequest(password="long enough"))


@pytest.mark.asyncio
async def test_unknown_setup_token(service):
    with pytest.raises(TokenInvalidError):
        await service.complete_setup("f" * 64, SetupCompleteRequest(password="long enough"))


@pytest.mark.asyncio
async def test_setup_requires_password(service, session):
    provisioned = await service.create_by_admin(MerchantAdminCreate(**profile_payload()), "admin-1")
    await session.commit()

    with pytest.raises(ValidationError) as exc_info:
        await service.complete_setup(provisioned.setup_token, SetupCompleteRequest(password="123"))
    assert exc_info.value.fields == ["password"]


@pytest.mark.asyncio
async def test_register_goes_straight_to_account_setup(service, session):
    merchant = await service.register(MerchantRegister(**profile_payload(), password="s3cret!"))
    await session.commit()

    assert merchant.onboarding_status == OnboardingStatus.ACCOUNT_SETUP.value
    assert merchant.created_by_admin is False
    assert merchant.account_setup_at is not None
    assert verify_password("s3cret!", merchant.password_hash)


@pytest.mark.asyncio
async def test_register_requires_password(service):
    with pytest.raises(ValidationError):
        await service.register(MerchantRegister(**profile_payload()))


@pytest.mark.asyncio
async def test_password_reset_flow(service, session, notifier, settings):
    merchant = await service.register(MerchantRegister(**profile_payload(), password="s3cret!"))
    await session.commit()

    await service.request_password_reset("Owner@BlueDoor.example.com")
    await session.commit()
    sent = notifier.last(PASSWORD_RESET_TEMPLATE)
    token = sent.context["reset_token"]
    expires = ensure_utc(merchant.reset_token_expires_at)
    assert expires - utcnow() <= timedelta(minutes=settings.reset_token_ttl_minutes)

    await service.reset_password(token, "brand new pass")
    await session.commit()

    assert verify_password("brand new pass", merchant.password_hash)
    assert merchant.reset_token_hash is None
    with pytest.raises(TokenInvalidError):
        await service.reset_password(token, "another one")


@pytest.mark.asyncio
async def test_password_reset_unknown_email(service):
    with pytest.raises(NotFoundError):
        await service.request_password_reset("nobody@example.com")


@pytest.mark.asyncio
async def test_update_profile_recomputes_and_checks_version(service, session):
    merchant = await service.register(MerchantRegister(**profile_payload(), password="s3cret!"))
    await session.commit()
    assert merchant.profile_completeness == 70
    version = merchant.version

    updated = await service.update_profile(
        merchant.id,
        MerchantProfileUpdate(website="https://bluedoor.example.com", expectedVersion=version),
        merchant.id,
    )
    await session.commit()

    assert updated.profile_completeness == 78
    assert updated.version == version + 1

    with pytest.raises(ConflictError):
        await service.update_profile(
            merchant.id, MerchantProfileUpdate(logo="x.png", expectedVersion=version), merchant.id
        )
    with pytest.raises(ValidationError):
        await service.update_profile(merchant.id, MerchantProfileUpdate(phone=""), merchant.id)

"""Tests for bulk admin operations (per-item isolation and outcome reporting)."""

import pytest

from conftest import profile_payload
from onboarding.domain.merchant import Merchant
from onboarding.schemas.merchant import MerchantAdminCreate, MerchantRegister
from onboarding.services.bulk import BulkOperationsCoordinator
from onboarding.services.documents import DocumentMeta, DocumentStore
from onboarding.services.provisioning import AccountProvisioningService
from onboarding.services.verification import VerificationStateMachine

UNKNOWN_ID = "00000000-0000-0000-0000-00000000dead"


async def _merchant(session, settings, notifier, email, documents=()):
    service = AccountProvisioningService(session, settings.default_client_id, settings, notifier)
    merchant = await service.register(
        MerchantRegister(**profile_payload(email=email), password="s3cret!")
    )
    store = DocumentStore(session, settings.default_client_id)
    for doc_type in documents:
        await store.submit(
            merchant.id,
            doc_type,
            DocumentMeta(storage_locator=f"local://merchants/{merchant.id}/{doc_type}.pdf"),
            merchant.id,
        )
    await session.commit()
    return merchant.id


@pytest.fixture
def coordinator(database, settings, notifier):
    return BulkOperationsCoordinator(
        database.session_factory, settings.default_client_id, settings, notifier
    )


@pytest.mark.asyncio
async def test_bulk_verify_reports_each_id(coordinator, database, session, settings, notifier):
    a = await _merchant(
        session, settings, notifier, "a@shops.example.com",
        ("businessRegistration", "idDocument", "utilityBill"),
    )
    b = await _merchant(session, settings, notifier, "b@shops.example.com", ("idDocument",))

    report = await coordinator.bulk_verify([a, b, UNKNOWN_ID], "batch approval", "admin-1")

    assert report.results == {
        a: "succeeded",
        b: "skipped:InvalidTransition",
        UNKNOWN_ID: "skipped:NotFound",
    }
    assert report.modified_count == 1
    assert report.succeeded == [a]
    assert report.skipped == [b, UNKNOWN_ID]

    async with database.session_factory() as check:
        assert (await check.get(Merchant, a)).verified is True
        assert (await check.get(Merchant, b)).verified is False


@pytest.mark.asyncio
async def test_bulk_verify_twice_skips_already_verified(coordinator, session, settings, notifier):
    a = await _merchant(
        session, settings, notifier, "a@shops.example.com",
        ("businessRegistration", "idDocument", "utilityBill"),
    )
    await coordinator.bulk_verify([a], None, "admin-1")

    report = await coordinator.bulk_verify([a, a], None, "admin-1")

    assert report.results == {a: "skipped:AlreadyVerified"}
    assert report.modified_count == 0


@pytest.mark.asyncio
async def test_bulk_featured_and_status(coordinator, database, session, settings, notifier):
    a = await _merchant(session, settings, notifier, "a@shops.example.com")
    b = await _merchant(session, settings, notifier, "b@shops.example.com")

    featured = await coordinator.bulk_set_featured([a, b], True, "admin-1")
    again = await coordinator.bulk_set_featured([a], True, "admin-1")
    status = await coordinator.bulk_set_status([b, UNKNOWN_ID], False, "admin-1")

    assert featured.modified_count == 2
    assert again.results == {a: "skipped:Unchanged"}
    assert status.results == {b: "succeeded", UNKNOWN_ID: "skipped:NotFound"}
    async with database.session_factory() as check:
        assert (await check.get(Merchant, a)).featured is True
        assert (await check.get(Merchant, b)).is_active is False


@pytest.mark.asyncio
async def test_bulk_create_isolates_failures(coordinator, database, notifier):
    payloads = [
        MerchantAdminCreate(**profile_payload(email="one@shops.example.com")),
        MerchantAdminCreate(**profile_payload(email="one@shops.example.com")),
        MerchantAdminCreate(**profile_payload(email="two@shops.example.com", phone=None)),
        MerchantAdminCreate(**profile_payload(email="three@shops.example.com")),
    ]

    report = await coordinator.bulk_create(payloads, "admin-1")

    assert [index for index, _ in report.created] == [0, 3]
    assert [(f.index, f.reason) for f in report.failed] == [(1, "Conflict"), (2, "Validation")]
    assert len(notifier.sent) == 2
    async with database.session_factory() as check:
        for _, provisioned in report.created:
            assert await check.get(Merchant, provisioned.merchant.id) is not None


@pytest.mark.asyncio
async def test_bulk_item_hit_by_concurrent_edit_is_skipped_as_conflict(
    coordinator, database, session, settings, notifier, monkeypatch
):
    a = await _merchant(session, settings, notifier, "a@shops.example.com")
    b = await _merchant(session, settings, notifier, "b@shops.example.com")
    load_merchant = VerificationStateMachine.get_merchant

    async def load_then_edit_elsewhere(machine, merchant_id):
        merchant = await load_merchant(machine, merchant_id)
        if merchant_id == a:
            async with database.session_factory() as other:
                (await other.get(Merchant, a)).description = "Edited by another admin"
                await other.commit()
        return merchant

    monkeypatch.setattr(VerificationStateMachine, "get_merchant", load_then_edit_elsewhere)
    report = await coordinator.bulk_set_featured([a, b], True, "admin-1")

    assert report.results == {a: "skipped:Conflict", b: "succeeded"}
    assert report.modified_count == 1
    async with database.session_factory() as check:
        edited = await check.get(Merchant, a)
        assert edited.featured is False
        assert edited.description == "Edited by another admin"

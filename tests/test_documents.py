"""Tests for the document store and local object storage."""

import pytest

from conftest import profile_payload
from onboarding.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from onboarding.schemas.merchant import MerchantRegister
from onboarding.services.documents import DocumentMeta, DocumentStore
from onboarding.services.provisioning import AccountProvisioningService
from onboarding.services.storage import LocalObjectStorage
from onboarding.services.verification import VerificationStateMachine


@pytest.fixture
async def merchant(session, settings, notifier):
    service = AccountProvisioningService(session, settings.default_client_id, settings, notifier)
    created = await service.register(MerchantRegister(**profile_payload(), password="s3cret!"))
    await session.commit()
    return created


@pytest.fixture
def store(session, settings):
    return DocumentStore(session, settings.default_client_id)


def _meta(name="scan.pdf"):
    return DocumentMeta(
        storage_locator=f"local://merchants/m/{name}",
        original_filename=name,
        file_size_bytes=2048,
        mime_type="application/pdf",
    )


@pytest.mark.asyncio
async def test_resubmitting_required_type_supersedes(store, merchant, session):
    first = await store.submit(merchant.id, "idDocument", _meta("old.pdf"), merchant.id)
    second = await store.submit(merchant.id, "idDocument", _meta("new.pdf"), merchant.id)
    await session.commit()

    active = await store.list_for_merchant(merchant.id)
    everything = await store.list_for_merchant(merchant.id, include_inactive=True)

    assert [d.id for d in active] == [second.id]
    assert {d.id for d in everything} == {first.id, second.id}
    assert first.is_active is False
    assert (await store.get_active(merchant.id, "idDocument")).id == second.id


@pytest.mark.asyncio
async def test_additional_documents_accumulate(store, merchant, session):
    await store.submit(merchant.id, "additionalDoc", _meta("menu.pdf"), merchant.id)
    await store.submit(merchant.id, "additionalDoc", _meta("permit.pdf"), merchant.id)
    await session.commit()

    active = await store.list_for_merchant(merchant.id)
    assert len(active) == 2
    assert merchant.documents_completeness == 0


@pytest.mark.asyncio
async def test_unknown_document_type_is_rejected(store, merchant):
    with pytest.raises(ValidationError) as exc_info:
        await store.submit(merchant.id, "passport", _meta(), merchant.id)
    assert exc_info.value.fields == ["documentType"]


@pytest.mark.asyncio
async def test_submit_for_unknown_merchant(store):
    with pytest.raises(NotFoundError):
        await store.submit("missing-merchant", "idDocument", _meta(), "someone")


@pytest.mark.asyncio
async def test_review_records_reviewer(store, merchant, session):
    document = await store.submit(merchant.id, "utilityBill", _meta(), merchant.id)
    reviewed = await store.review(document.id, "approved", "Matches address", "admin-1")
    await session.commit()

    assert reviewed.status == "approved"
    assert reviewed.reviewed_by == "admin-1"
    assert reviewed.reviewed_at is not None
    assert reviewed.review_notes == "Matches address"


@pytest.mark.asyncio
async def test_review_status_must_be_a_decision(store, merchant):
    document = await store.submit(merchant.id, "utilityBill", _meta(), merchant.id)
    with pytest.raises(ValidationError):
        await store.review(document.id, "pending", None, "admin-1")


@pytest.mark.asyncio
async def test_bulk_review_reports_unknown_ids(store, merchant, session):
    a = await store.submit(merchant.id, "idDocument", _meta("a.pdf"), merchant.id)
    b = await store.submit(merchant.id, "utilityBill", _meta("b.pdf"), merchant.id)

    updated, unknown = await store.bulk_review([a.id, b.id, "nope"], "rejected", "Unreadable", "admin-1")
    await session.commit()

    assert updated == 2
    assert unknown == ["nope"]
    assert a.status == b.status == "rejected"


@pytest.mark.asyncio
async def test_stats(store, merchant, session):
    doc = await store.submit(merchant.id, "idDocument", _meta("a.pdf"), merchant.id)
    await store.submit(merchant.id, "utilityBill", _meta("b.pdf"), merchant.id)
    await store.submit(merchant.id, "additionalDoc", _meta("c.pdf"), merchant.id)
    await store.review(doc.id, "approved", None, "admin-1")
    await session.commit()

    stats = await store.get_stats()

    assert stats["total_documents"] == 3
    assert stats["pending_reviews"] == 2
    assert stats["recent_uploads"] == 3
    assert stats["by_status"] == {"approved": 1, "pending": 2}
    assert stats["by_type"]["additionalDoc"] == 1


@pytest.mark.asyncio
async def test_deactivate_recomputes_completeness(store, merchant, session):
    doc = await store.submit(merchant.id, "idDocument", _meta(), merchant.id)
    assert merchant.documents_completeness == 33

    await store.deactivate(doc.id, "admin-1")
    await session.commit()

    assert merchant.documents_completeness == 0
    with pytest.raises(NotFoundError):
        await store.deactivate(doc.id, "admin-1")


@pytest.mark.asyncio
async def test_cannot_remove_required_document_from_verified_merchant(store, merchant, session, settings):
    docs = [
        await store.submit(merchant.id, doc_type, _meta(f"{doc_type}.pdf"), merchant.id)
        for doc_type in ("businessRegistration", "idDocument", "utilityBill")
    ]
    await VerificationStateMachine(session, settings.default_client_id).verify(merchant.id, "admin-1")
    await session.commit()

    with pytest.raises(InvalidTransitionError):
        await store.deactivate(docs[0].id, "admin-1")
    assert docs[0].is_active is True


@pytest.mark.asyncio
async def test_local_storage_round_trip_and_containment(tmp_path):
    storage = LocalObjectStorage(tmp_path / "objects")
    key = storage.build_key("m-1", "idDocument", "Passport.PNG")
    assert key.startswith("merchants/m-1/idDocument/") and key.endswith(".png")

    locator = await storage.put(key, b"\x89PNG data")

    assert locator == f"local://{key}"
    assert await storage.get(locator) == b"\x89PNG data"
    with pytest.raises(NotFoundError):
        await storage.get("local://../../etc/passwd")
    with pytest.raises(NotFoundError):
        await storage.get("s3://bucket/key")


@pytest.mark.asyncio
async def test_racing_submit_of_same_required_type_is_a_conflict(
    store, merchant, session, database, settings, monkeypatch
):
    await store.submit(merchant.id, "idDocument", _meta("first.pdf"), merchant.id)
    await session.commit()

    async with database.session_factory() as other:
        racing = DocumentStore(other, settings.default_client_id)

        # This writer read "no active idDocument" before the first one committed
        async def _stale_read(*args, **kwargs):
            return None

        monkeypatch.setattr(racing._repo, "get_active", _stale_read)
        with pytest.raises(ConflictError):
            await racing.submit(merchant.id, "idDocument", _meta("second.pdf"), merchant.id)
        await other.rollback()

    active = await store.list_for_merchant(merchant.id)
    assert [d.original_filename for d in active] == ["first.pdf"]


@pytest.mark.asyncio
async def test_get_returns_superseded_documents(store, merchant, session):
    first = await store.submit(merchant.id, "utilityBill", _meta("march.pdf"), merchant.id)
    await store.submit(merchant.id, "utilityBill", _meta("april.pdf"), merchant.id)
    await session.commit()

    fetched = await store.get(first.id)

    assert fetched.id == first.id
    assert fetched.is_active is False
    with pytest.raises(NotFoundError):
        await store.get("00000000-0000-0000-0000-000000000000")

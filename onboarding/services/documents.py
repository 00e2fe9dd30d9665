"""Document store — verification artifact metadata and per-document review.

Bytes never pass through here: the router stores them via the object storage
collaborator and submits the resulting locator. Records are never physically
removed; a resubmitted required document supersedes (deactivates) the
previous one so exactly one active record exists per (merchant, required
type).
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from onboarding.core.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from onboarding.domain.document import DocumentStatus, DocumentType, MerchantDocument
from onboarding.domain.mixins import utcnow
from onboarding.repositories.document import MerchantDocumentRepository
from onboarding.services.verification import VerificationStateMachine

logger = logging.getLogger(__name__)

REVIEW_STATUSES = {DocumentStatus.APPROVED.value, DocumentStatus.REJECTED.value}
RECENT_UPLOAD_WINDOW = timedelta(days=7)


@dataclass(frozen=True)
class DocumentMeta:
    storage_locator: str
    original_filename: str | None = None
    file_size_bytes: int | None = None
    mime_type: str | None = None
    description: str | None = None


def parse_document_type(value: str) -> DocumentType:
    try:
        return DocumentType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in DocumentType)
        raise ValidationError(
            f"Unknown document type '{value}'. Expected one of: {allowed}",
            fields=["documentType"],
        ) from None


class DocumentStore:
    def __init__(self, session: AsyncSession, client_id: str):
        self._repo = MerchantDocumentRepository(session, client_id)
        self._state_machine = VerificationStateMachine(session, client_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def submit(
        self,
        merchant_id: str,
        document_type: str,
        meta: DocumentMeta,
        uploaded_by: str | None = None,
    ) -> MerchantDocument:
        doc_type = parse_document_type(document_type)
        if not (meta.storage_locator or "").strip():
            raise ValidationError("Document storage locator is required", fields=["storageLocator"])
        merchant = await self._state_machine.get_merchant(merchant_id)

        if doc_type is not DocumentType.ADDITIONAL:
            previous = await self._repo.get_active(merchant.id, doc_type.value)
            if previous is not None:
                previous.is_active = False
                previous.deactivated_at = utcnow()
                # Flush before the insert so the partial unique index never sees two active rows
                await self._repo.save(previous)
                logger.info(
                    "Document %s superseded for merchant %s (%s)",
                    previous.id, merchant.id, doc_type.value,
                )

        document = self._repo.add(
            merchant_id=merchant.id,
            document_type=doc_type.value,
            storage_locator=meta.storage_locator,
            original_filename=meta.original_filename,
            file_size_bytes=meta.file_size_bytes,
            mime_type=meta.mime_type,
            description=meta.description,
            uploaded_by=uploaded_by,
            status=DocumentStatus.PENDING.value,
            is_active=True,
        )
        await self._repo.save(document)

        uploaded = [document.id] if document.is_required else None
        await self._state_machine.save(merchant, uploaded_by, uploaded_document_ids=uploaded)
        return document

    async def review(
        self,
        document_id: str,
        status: str,
        notes: str | None,
        reviewer_id: str | None,
    ) -> MerchantDocument:
        """Approve or reject one document. Never flips the merchant's ``verified`` flag."""
        if status not in REVIEW_STATUSES:
            raise ValidationError(
                "Status must be either 'approved' or 'rejected'", fields=["status"]
            )
        document = await self._repo.get_active_by_id(document_id)
        if not document:
            raise NotFoundError("Document", document_id)

        document.status = status
        document.review_notes = notes
        document.reviewed_by = reviewer_id
        document.reviewed_at = utcnow()
        await self._repo.save(document)
        logger.info("Document %s %s by %s", document.id, status, reviewer_id)
        return document

    async def bulk_review(
        self,
        document_ids: list[str],
        status: str,
        notes: str | None,
        reviewer_id: str | None,
    ) -> tuple[int, list[str]]:
        """Review many documents; returns (updated count, unknown ids)."""
        if not document_ids:
            raise ValidationError("Document IDs array is required", fields=["documentIds"])
        if status not in REVIEW_STATUSES:
            raise ValidationError(
                "Status must be either 'approved' or 'rejected'", fields=["status"]
            )
        updated = 0
        unknown: list[str] = []
        for document_id in dict.fromkeys(document_ids):
            try:
                await self.review(document_id, status, notes, reviewer_id)
            except NotFoundError:
                unknown.append(document_id)
                continue
            updated += 1
        return updated, unknown

    async def deactivate(self, document_id: str, actor_id: str | None) -> MerchantDocument:
        document = await self._repo.get_active_by_id(document_id)
        if not document:
            raise NotFoundError("Document", document_id)
        merchant = await self._state_machine.get_merchant(document.merchant_id)
        if document.is_required and merchant.verified:
            raise InvalidTransitionError(
                f"Cannot remove required document '{document.document_type}' "
                "from a verified merchant",
                missing_documents=[document.document_type],
            )

        document.is_active = False
        document.deactivated_at = utcnow()
        await self._repo.save(document)
        await self._state_machine.save(merchant, actor_id)
        logger.info("Document %s deactivated by %s", document.id, actor_id)
        return document

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_for_merchant(
        self, merchant_id: str, include_inactive: bool = False
    ) -> list[MerchantDocument]:
        await self._state_machine.get_merchant(merchant_id)
        return await self._repo.list_for_merchant(merchant_id, include_inactive=include_inactive)

    async def list_documents(
        self, status: str | None = None, document_type: str | None = None
    ) -> list[MerchantDocument]:
        if document_type:
            document_type = parse_document_type(document_type).value
        return await self._repo.list_documents(status=status, document_type=document_type)

    async def get(self, document_id: str) -> MerchantDocument:
        """Any document record by id, superseded ones included."""
        document = await self._repo.get_by_id(document_id)
        if not document:
            raise NotFoundError("Document", document_id)
        return document

    async def get_active(self, merchant_id: str, document_type: str) -> MerchantDocument:
        doc_type = parse_document_type(document_type)
        await self._state_machine.get_merchant(merchant_id)
        document = await self._repo.get_active(merchant_id, doc_type.value)
        if not document:
            raise NotFoundError("Document", f"{merchant_id}/{doc_type.value}")
        return document

    async def get_stats(self) -> dict:
        by_status = await self._repo.count_grouped_by("status")
        by_type = await self._repo.count_grouped_by("document_type")
        recent = await self._repo.count_uploaded_since(utcnow() - RECENT_UPLOAD_WINDOW)
        return {
            "by_status": by_status,
            "by_type": by_type,
            "pending_reviews": by_status.get(DocumentStatus.PENDING.value, 0),
            "recent_uploads": recent,
            "total_documents": sum(by_status.values()),
        }

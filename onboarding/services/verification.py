"""Merchant verification state machine.

Onboarding status::

    credentials_sent -> account_setup -> documents_submitted -> under_review -> completed

``verified`` / ``is_active`` / ``featured`` are independent flags that can
change in any onboarding state. Per-document review status
(pending/approved/rejected) belongs to the document store; the merchant-level
``document_review_status`` summarises where the document set stands.

Every merchant write goes through :meth:`VerificationStateMachine.refresh`
before the flush, so the completeness scores are never stale and the
automatic ``account_setup -> documents_submitted`` move fires exactly once.

Incompleteness is a valid state; only illegal *actions* raise
:class:`InvalidTransitionError`.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from onboarding.core.exceptions import InvalidTransitionError, NotFoundError
from onboarding.domain.document import DocumentStatus
from onboarding.domain.history import HistoryAction
from onboarding.domain.merchant import DocumentReviewStatus, Merchant, OnboardingStatus
from onboarding.domain.mixins import utcnow
from onboarding.repositories.document import MerchantDocumentRepository
from onboarding.repositories.history import VerificationHistoryRepository
from onboarding.repositories.merchant import MerchantRepository
from onboarding.services import completeness

logger = logging.getLogger(__name__)


@dataclass
class TransitionOutcome:
    merchant: Merchant
    changed: bool


class VerificationStateMachine:
    def __init__(self, session: AsyncSession, client_id: str):
        self._merchants = MerchantRepository(session, client_id)
        self._documents = MerchantDocumentRepository(session, client_id)
        self._history = VerificationHistoryRepository(session, client_id)

    async def get_merchant(self, merchant_id: str) -> Merchant:
        merchant = await self._merchants.get_by_id(merchant_id)
        if not merchant:
            raise NotFoundError("Merchant", merchant_id)
        return merchant

    # ------------------------------------------------------------------
    # Pipeline step: recompute derived fields + automatic transitions
    # ------------------------------------------------------------------

    async def refresh(
        self,
        merchant: Merchant,
        actor_id: str | None = None,
        uploaded_document_ids: list[str] | None = None,
    ) -> list[str]:
        """Recompute completeness and apply automatic transitions in place.

        ``uploaded_document_ids`` names required documents uploaded by the
        write being refreshed; only such a write can count as a resubmission
        after a rejection. Returns the history actions appended. Does not
        flush; callers save.
        """
        required_docs = (
            await self._documents.active_required(merchant.id) if merchant.id else {}
        )
        locators = {doc_type: doc.storage_locator for doc_type, doc in required_docs.items()}
        scores = completeness.calculate(completeness.profile_of(merchant), locators)
        merchant.profile_completeness = scores.profile
        merchant.documents_completeness = scores.documents

        applied: list[str] = []
        if not scores.documents_complete:
            return applied

        document_ids = [doc.id for doc in required_docs.values()]

        if merchant.onboarding_status == OnboardingStatus.ACCOUNT_SETUP.value:
            merchant.onboarding_status = OnboardingStatus.DOCUMENTS_SUBMITTED.value
            merchant.documents_submitted_at = utcnow()
            merchant.document_review_status = DocumentReviewStatus.PENDING.value
            self._history.append(
                merchant.id,
                HistoryAction.SUBMITTED.value,
                performed_by=actor_id,
                notes="All required documents submitted",
                documents_involved=document_ids,
            )
            applied.append(HistoryAction.SUBMITTED.value)
            logger.info("Merchant %s documents submitted", merchant.id)
        elif (
            merchant.document_review_status == DocumentReviewStatus.REJECTED.value
            and not merchant.verified
            and uploaded_document_ids
        ):
            if merchant.onboarding_status == OnboardingStatus.UNDER_REVIEW.value:
                merchant.onboarding_status = OnboardingStatus.DOCUMENTS_SUBMITTED.value
            merchant.documents_submitted_at = utcnow()
            merchant.document_review_status = DocumentReviewStatus.PENDING.value
            self._history.append(
                merchant.id,
                HistoryAction.RESUBMITTED.value,
                performed_by=actor_id,
                notes="Documents resubmitted after rejection",
                documents_involved=document_ids,
            )
            applied.append(HistoryAction.RESUBMITTED.value)
            logger.info("Merchant %s documents resubmitted", merchant.id)

        return applied

    async def save(
        self,
        merchant: Merchant,
        actor_id: str | None = None,
        uploaded_document_ids: list[str] | None = None,
    ) -> Merchant:
        """Refresh derived state then flush (the single write path for merchants)."""
        await self.refresh(merchant, actor_id, uploaded_document_ids)
        return await self._merchants.save(merchant)

    # ------------------------------------------------------------------
    # Admin actions
    # ------------------------------------------------------------------

    async def verify(
        self, merchant_id: str, actor_id: str | None, notes: str | None = None
    ) -> TransitionOutcome:
        merchant = await self.get_merchant(merchant_id)
        if merchant.verified:
            return TransitionOutcome(merchant, changed=False)

        required_docs = await self._documents.active_required(merchant.id)
        locators = {doc_type: doc.storage_locator for doc_type, doc in required_docs.items()}
        missing = completeness.missing_documents(locators)
        rejected = sorted(
            doc_type
            for doc_type, doc in required_docs.items()
            if doc.status == DocumentStatus.REJECTED.value
        )
        if missing or rejected:
            parts = []
            if missing:
                parts.append(f"missing documents: {', '.join(missing)}")
            if rejected:
                parts.append(f"rejected documents: {', '.join(rejected)}")
            raise InvalidTransitionError(
                f"Merchant '{merchant_id}' cannot be verified ({'; '.join(parts)})",
                missing_documents=missing,
                rejected_documents=rejected,
            )

        merchant.verified = True
        merchant.verified_at = utcnow()
        merchant.document_review_status = DocumentReviewStatus.APPROVED.value
        if merchant.onboarding_status == OnboardingStatus.UNDER_REVIEW.value:
            merchant.onboarding_status = OnboardingStatus.COMPLETED.value
        self._history.append(
            merchant.id,
            HistoryAction.APPROVED.value,
            performed_by=actor_id,
            notes=notes,
            documents_involved=[doc.id for doc in required_docs.values()],
        )
        await self.save(merchant, actor_id)
        logger.info("Merchant %s verified by %s", merchant.id, actor_id)
        return TransitionOutcome(merchant, changed=True)

    async def start_review(
        self, merchant_id: str, actor_id: str | None, notes: str | None = None
    ) -> TransitionOutcome:
        merchant = await self.get_merchant(merchant_id)
        if merchant.onboarding_status == OnboardingStatus.UNDER_REVIEW.value:
            return TransitionOutcome(merchant, changed=False)
        if merchant.onboarding_status != OnboardingStatus.DOCUMENTS_SUBMITTED.value:
            raise InvalidTransitionError(
                f"Merchant '{merchant_id}' is '{merchant.onboarding_status}'; "
                "review can only start once documents are submitted"
            )

        merchant.onboarding_status = OnboardingStatus.UNDER_REVIEW.value
        merchant.document_review_status = DocumentReviewStatus.UNDER_REVIEW.value
        self._history.append(
            merchant.id, HistoryAction.UNDER_REVIEW.value, performed_by=actor_id, notes=notes
        )
        await self.save(merchant, actor_id)
        return TransitionOutcome(merchant, changed=True)

    async def reject(
        self, merchant_id: str, actor_id: str | None, notes: str | None = None
    ) -> TransitionOutcome:
        merchant = await self.get_merchant(merchant_id)
        if merchant.verified:
            raise InvalidTransitionError(
                f"Merchant '{merchant_id}' is already verified and cannot be rejected"
            )
        if merchant.document_review_status == DocumentReviewStatus.REJECTED.value:
            return TransitionOutcome(merchant, changed=False)

        merchant.document_review_status = DocumentReviewStatus.REJECTED.value
        self._history.append(
            merchant.id,
            HistoryAction.REJECTED.value,
            performed_by=actor_id,
            notes=notes or "Verification rejected by admin",
        )
        await self.save(merchant, actor_id)
        logger.info("Merchant %s verification rejected by %s", merchant.id, actor_id)
        return TransitionOutcome(merchant, changed=True)

    async def set_active(
        self, merchant_id: str, is_active: bool, actor_id: str | None
    ) -> TransitionOutcome:
        merchant = await self.get_merchant(merchant_id)
        if merchant.is_active == is_active:
            return TransitionOutcome(merchant, changed=False)

        merchant.is_active = is_active
        action = HistoryAction.ACTIVATED if is_active else HistoryAction.DEACTIVATED
        self._history.append(merchant.id, action.value, performed_by=actor_id)
        await self.save(merchant, actor_id)
        return TransitionOutcome(merchant, changed=True)

    async def set_featured(
        self, merchant_id: str, featured: bool, actor_id: str | None
    ) -> TransitionOutcome:
        merchant = await self.get_merchant(merchant_id)
        if merchant.featured == featured:
            return TransitionOutcome(merchant, changed=False)

        merchant.featured = featured
        merchant.featured_at = utcnow() if featured else None
        action = HistoryAction.FEATURED if featured else HistoryAction.UNFEATURED
        self._history.append(merchant.id, action.value, performed_by=actor_id)
        await self.save(merchant, actor_id)
        return TransitionOutcome(merchant, changed=True)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def history(self, merchant_id: str):
        await self.get_merchant(merchant_id)
        return await self._history.list_for_merchant(merchant_id)

    async def list_merchants(self, **kwargs) -> tuple[list[Merchant], int]:
        return await self._merchants.list(**kwargs)

    async def pending_review(self, limit: int = 100) -> list[Merchant]:
        return await self._merchants.list_pending_review(limit=limit)

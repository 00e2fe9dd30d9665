"""Merchant repository — lookups by email, credential token and review queue."""

from sqlalchemy import func, select

from onboarding.domain.merchant import DocumentReviewStatus, Merchant
from onboarding.repositories.base import BaseRepository


class MerchantRepository(BaseRepository[Merchant]):
    model = Merchant

    async def get_by_email(self, email: str) -> Merchant | None:
        result = await self._session.execute(
            self._base_query().where(func.lower(Merchant.email) == email.strip().lower())
        )
        return result.scalars().first()

    async def get_by_setup_token(self, token_hash: str) -> Merchant | None:
        result = await self._session.execute(
            self._base_query().where(Merchant.setup_token_hash == token_hash)
        )
        return result.scalars().first()

    async def get_by_reset_token(self, token_hash: str) -> Merchant | None:
        result = await self._session.execute(
            self._base_query().where(Merchant.reset_token_hash == token_hash)
        )
        return result.scalars().first()

    async def list_pending_review(self, limit: int = 100) -> list[Merchant]:
        """Unverified merchants with a complete document set awaiting a decision, oldest first."""
        q = (
            self._base_query()
            .where(Merchant.verified.is_(False))
            .where(Merchant.documents_completeness == 100)
            .where(
                Merchant.document_review_status.in_(
                    [DocumentReviewStatus.PENDING.value, DocumentReviewStatus.UNDER_REVIEW.value]
                )
            )
            .order_by(Merchant.documents_submitted_at.asc())
            .limit(limit)
        )
        return list((await self._session.execute(q)).scalars().all())

"""Customer reviews of a merchant.

Only the write path lives here; the rating aggregate is recomputed by
:class:`~onboarding.services.rating.RatingAggregator` once the write commits.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from onboarding.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from onboarding.domain.review import Review
from onboarding.repositories.merchant import MerchantRepository
from onboarding.repositories.review import ReviewRepository
from onboarding.schemas.review import ReviewCreate, ReviewUpdate

logger = logging.getLogger(__name__)


class ReviewService:
    def __init__(self, session: AsyncSession, client_id: str):
        self._repo = ReviewRepository(session, client_id)
        self._merchants = MerchantRepository(session, client_id)

    async def _get_owned(self, review_id: str, user_id: str, is_admin: bool) -> Review:
        review = await self._repo.get_by_id(review_id)
        if not review:
            raise NotFoundError("Review", review_id)
        if not is_admin and review.user_id != user_id:
            raise ForbiddenError("Only the review author can change this review")
        return review

    async def create(self, merchant_id: str, user_id: str, data: ReviewCreate) -> Review:
        if not await self._merchants.get_by_id(merchant_id):
            raise NotFoundError("Merchant", merchant_id)
        if await self._repo.get_for_user(merchant_id, user_id):
            raise ConflictError("You have already reviewed this merchant")

        review = await self._repo.create(
            merchant_id=merchant_id,
            user_id=user_id,
            rating=data.rating,
            content=data.content,
        )
        logger.info("Review %s created for merchant %s", review.id, merchant_id)
        return review

    async def update(
        self, review_id: str, user_id: str, data: ReviewUpdate, is_admin: bool = False
    ) -> Review:
        review = await self._get_owned(review_id, user_id, is_admin)
        for name, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(review, name, value)
        await self._repo.save(review)
        return review

    async def delete(self, review_id: str, user_id: str, is_admin: bool = False) -> str:
        """Delete a review and return the merchant id whose rating needs recomputing."""
        review = await self._get_owned(review_id, user_id, is_admin)
        merchant_id = review.merchant_id
        await self._repo.delete(review)
        logger.info("Review %s deleted by %s", review_id, user_id)
        return merchant_id

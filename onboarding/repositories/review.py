"""Review repository — per-merchant lookups and the rating aggregate query."""

from sqlalchemy import delete, func, select

from onboarding.domain.review import Review
from onboarding.repositories.base import BaseRepository


class ReviewRepository(BaseRepository[Review]):
    model = Review

    async def get_for_user(self, merchant_id: str, user_id: str) -> Review | None:
        result = await self._session.execute(
            self._base_query()
            .where(Review.merchant_id == merchant_id)
            .where(Review.user_id == user_id)
        )
        return result.scalars().first()

    async def rating_summary(self, merchant_id: str) -> tuple[float | None, int]:
        """Return (average rating or None, review count) for a merchant."""
        result = await self._session.execute(
            select(func.avg(Review.rating), func.count(Review.id))
            .where(Review.client_id == self._client_id)
            .where(Review.merchant_id == merchant_id)
        )
        average, count = result.one()
        return (float(average) if average is not None else None), int(count)

    async def delete(self, review: Review) -> None:
        # Reviews belong to the storefront; removing one is a real delete.
        await self._session.execute(
            delete(Review)
            .where(Review.id == review.id)
            .where(Review.client_id == self._client_id)
        )
        await self._session.flush()

"""Merchant rating aggregate, recomputed after every review write."""

import logging
import math

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from onboarding.domain.merchant import Merchant
from onboarding.repositories.review import ReviewRepository

logger = logging.getLogger(__name__)


def round_rating(value: float) -> float:
    """Round half-up to one decimal (``4.25 -> 4.3``)."""
    return math.floor(value * 10 + 0.5) / 10


class RatingAggregator:
    """Recomputes ``rating`` / ``review_count`` in its own session.

    Runs after the review write has committed (as a background task), so a
    failure here can only leave the aggregate stale, never lose the review.
    Every error is logged and swallowed.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], client_id: str):
        self._session_factory = session_factory
        self._client_id = client_id

    async def recompute(self, merchant_id: str) -> tuple[float, int] | None:
        try:
            async with self._session_factory() as session:
                average, count = await ReviewRepository(session, self._client_id).rating_summary(
                    merchant_id
                )
                rating = round_rating(average) if count and average is not None else 0.0
                # Core UPDATE: the aggregate is not a profile edit and must not bump the version
                await session.execute(
                    update(Merchant)
                    .where(Merchant.id == merchant_id)
                    .where(Merchant.client_id == self._client_id)
                    .values(rating=rating, review_count=count)
                    .execution_options(synchronize_session=False)
                )
                await session.commit()
        except Exception:
            logger.exception("Failed to recompute rating for merchant %s", merchant_id)
            return None
        logger.debug("Merchant %s rating %.1f from %d reviews", merchant_id, rating, count)
        return rating, count

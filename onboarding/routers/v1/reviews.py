"""Review edit/delete router (/api/v1/reviews). Creation lives under /merchants/{id}/reviews."""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from onboarding.core.config import Settings
from onboarding.core.deps import Actor, get_actor, get_settings
from onboarding.core.response import DataResponse
from onboarding.db.base import get_db, get_session_factory
from onboarding.schemas.common import MessageResponse
from onboarding.schemas.review import ReviewOut, ReviewUpdate
from onboarding.services.rating import RatingAggregator
from onboarding.services.reviews import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.put("/{review_id}", response_model=DataResponse[ReviewOut])
async def update_review(
    review_id: str,
    body: ReviewUpdate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
):
    review = await ReviewService(session, settings.default_client_id).update(
        review_id, actor.id, body, is_admin=actor.is_admin
    )
    await session.commit()
    aggregator = RatingAggregator(session_factory, settings.default_client_id)
    background_tasks.add_task(aggregator.recompute, review.merchant_id)
    return {"data": ReviewOut.model_validate(review)}


@router.delete("/{review_id}", response_model=MessageResponse)
async def delete_review(
    review_id: str,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
):
    merchant_id = await ReviewService(session, settings.default_client_id).delete(
        review_id, actor.id, is_admin=actor.is_admin
    )
    await session.commit()
    aggregator = RatingAggregator(session_factory, settings.default_client_id)
    background_tasks.add_task(aggregator.recompute, merchant_id)
    return MessageResponse(message="Review deleted")

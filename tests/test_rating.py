"""Tests for reviews and the merchant rating aggregate."""

import logging

import pytest

from conftest import profile_payload
from onboarding.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from onboarding.domain.merchant import Merchant
from onboarding.schemas.merchant import MerchantRegister
from onboarding.schemas.review import ReviewCreate, ReviewUpdate
from onboarding.services.provisioning import AccountProvisioningService
from onboarding.services.rating import RatingAggregator, round_rating
from onboarding.services.reviews import ReviewService


@pytest.fixture
async def merchant_id(session, settings, notifier):
    service = AccountProvisioningService(session, settings.default_client_id, settings, notifier)
    merchant = await service.register(MerchantRegister(**profile_payload(), password="s3cret!"))
    await session.commit()
    return merchant.id


@pytest.fixture
def reviews(session, settings):
    return ReviewService(session, settings.default_client_id)


@pytest.fixture
def aggregator(database, settings):
    return RatingAggregator(database.session_factory, settings.default_client_id)


async def _stored_rating(database, merchant_id):
    async with database.session_factory() as check:
        merchant = await check.get(Merchant, merchant_id)
        return merchant.rating, merchant.review_count


def test_round_rating_half_up():
    assert round_rating(4.25) == 4.3
    assert round_rating(4.0) == 4.0
    assert round_rating(3.333) == 3.3


@pytest.mark.asyncio
async def test_recompute_average_and_count(reviews, aggregator, session, database, merchant_id):
    for user, stars in (("u1", 5), ("u2", 4), ("u3", 3)):
        await reviews.create(merchant_id, user, ReviewCreate(rating=stars))
    await session.commit()

    result = await aggregator.recompute(merchant_id)

    assert result == (4.0, 3)
    assert await _stored_rating(database, merchant_id) == (4.0, 3)


@pytest.mark.asyncio
async def test_recompute_is_idempotent(reviews, aggregator, session, database, merchant_id):
    await reviews.create(merchant_id, "u1", ReviewCreate(rating=5))
    await reviews.create(merchant_id, "u2", ReviewCreate(rating=4))
    await session.commit()

    await aggregator.recompute(merchant_id)
    await aggregator.recompute(merchant_id)

    assert await _stored_rating(database, merchant_id) == (4.5, 2)


@pytest.mark.asyncio
async def test_deleting_every_review_resets_to_zero(reviews, aggregator, session, database, merchant_id):
    first = await reviews.create(merchant_id, "u1", ReviewCreate(rating=2))
    second = await reviews.create(merchant_id, "u2", ReviewCreate(rating=5))
    await session.commit()
    await aggregator.recompute(merchant_id)

    await reviews.delete(first.id, "u1")
    await reviews.delete(second.id, "admin-1", is_admin=True)
    await session.commit()
    await aggregator.recompute(merchant_id)

    assert await _stored_rating(database, merchant_id) == (0.0, 0)


@pytest.mark.asyncio
async def test_rating_write_does_not_bump_version(reviews, aggregator, session, database, merchant_id):
    async with database.session_factory() as check:
        before = (await check.get(Merchant, merchant_id)).version
    await reviews.create(merchant_id, "u1", ReviewCreate(rating=4))
    await session.commit()

    await aggregator.recompute(merchant_id)

    async with database.session_factory() as check:
        assert (await check.get(Merchant, merchant_id)).version == before


@pytest.mark.asyncio
async def test_recompute_swallows_errors(settings, caplog):
    class BrokenFactory:
        def __call__(self):
            raise RuntimeError("database unavailable")

    aggregator = RatingAggregator(BrokenFactory(), settings.default_client_id)

    with caplog.at_level(logging.ERROR, logger="onboarding.services.rating"):
        assert await aggregator.recompute("any-merchant") is None
    assert "Failed to recompute rating" in caplog.text


@pytest.mark.asyncio
async def test_one_review_per_user(reviews, session, merchant_id):
    await reviews.create(merchant_id, "u1", ReviewCreate(rating=5))
    await session.commit()

    with pytest.raises(ConflictError):
        await reviews.create(merchant_id, "u1", ReviewCreate(rating=1))


@pytest.mark.asyncio
async def test_only_author_or_admin_edits(reviews, session, merchant_id):
    review = await reviews.create(merchant_id, "u1", ReviewCreate(rating=5))
    await session.commit()

    with pytest.raises(ForbiddenError):
        await reviews.update(review.id, "u2", ReviewUpdate(rating=1))
    updated = await reviews.update(review.id, "u1", ReviewUpdate(rating=3, content="Changed my mind"))
    assert updated.rating == 3
    with pytest.raises(NotFoundError):
        await reviews.delete("missing", "u1")


@pytest.mark.asyncio
async def test_review_for_unknown_merchant(reviews):
    with pytest.raises(NotFoundError):
        await reviews.create("missing", "u1", ReviewCreate(rating=4))

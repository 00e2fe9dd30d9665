"""Review schemas. Rating is a whole number of stars, 1 to 5."""


from datetime import datetime

from pydantic import Field

from onboarding.schemas.common import CamelModel


class ReviewCreate(CamelModel):
    rating: int = Field(ge=1, le=5)
    content: str | None = None


class ReviewUpdate(CamelModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    content: str | None = None


class ReviewOut(CamelModel):
    id: str
    merchant_id: str
    user_id: str
    rating: int
    content: str | None = None
    created_at: datetime
    updated_at: datetime

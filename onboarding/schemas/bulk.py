"""Bulk admin operation request/response schemas."""


from pydantic import Field

from onboarding.schemas.common import CamelModel
from onboarding.schemas.merchant import MerchantAdminCreate, CredentialsOut


class BulkVerifyRequest(CamelModel):
    merchant_ids: list[str] = Field(min_length=1)
    notes: str | None = None


class BulkStatusRequest(CamelModel):
    merchant_ids: list[str] = Field(min_length=1)
    is_active: bool


class BulkFeaturedRequest(CamelModel):
    merchant_ids: list[str] = Field(min_length=1)
    featured: bool


class BulkOperationOut(CamelModel):
    """Per-id outcome: ``succeeded`` or ``skipped:<Reason>``."""

    results: dict[str, str]
    modified_count: int
    succeeded: list[str]
    skipped: list[str]


class BulkCreateRequest(CamelModel):
    merchants: list[MerchantAdminCreate] = Field(min_length=1)


class BulkCreatedItem(CamelModel):
    index: int
    merchant_id: str
    credentials: CredentialsOut


class BulkCreateFailure(CamelModel):
    index: int
    email: str | None = None
    reason: str
    message: str


class BulkCreateOut(CamelModel):
    created: list[BulkCreatedItem]
    failed: list[BulkCreateFailure]
    created_count: int

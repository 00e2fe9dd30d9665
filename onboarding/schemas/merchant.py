"""Merchant Pydantic schemas (request DTOs and response models).

Profile fields are optional on every request model so that the provisioning
service, not request parsing, reports which required fields are missing.
"""


from datetime import datetime
from typing import Any

from pydantic import Field

from onboarding.schemas.common import CamelModel

class BusinessHoursDay(CamelModel):
    open: str | None = None
    close: str | None = None
    closed: bool = False

class MerchantProfileFields(CamelModel):
    business_name: str | None = None
    email: str | None = None
    phone: str | None = None
    business_type: str | None = None
    description: str | None = None
    address: str | None = None
    location: str | None = None
    landmark: str | None = None
    website: str | None = None
    year_established: int | None = Field(default=None, ge=1800, le=2100)
    logo: str | None = None
    business_hours: dict[str, BusinessHoursDay] | None = None

class MerchantAdminCreate(MerchantProfileFields):
    auto_verify: bool = False
    auto_verify_reason: str | None = None

class MerchantRegister(MerchantProfileFields):
    password: str | None = None

class MerchantProfileUpdate(MerchantProfileFields):
    expected_version: int | None = None

class SetupCompleteRequest(CamelModel):
    password: str | None = None
    business_hours: dict[str, BusinessHoursDay] | None = None
    description: str | None = None
    website: str | None = None

class PasswordForgotRequest(CamelModel):
    email: str

class PasswordResetRequest(CamelModel):
    password: str | None = None

class AdminNotesRequest(CamelModel):
    notes: str | None = None

class FeaturedRequest(CamelModel):
    featured: bool

class StatusRequest(CamelModel):
    is_active: bool

class MerchantOut(CamelModel):
    id: str
    client_id: str
    business_name: str
    email: str
    phone: str | None = None
    business_type: str | None = None
    description: str | None = None
    address: str | None = None
    location: str | None = None
    landmark: str | None = None
    website: str | None = None
    year_established: int | None = None
    logo: str | None = None
    business_hours: dict[str, Any] | None = None
    is_active: bool
    verified: bool
    verified_at: datetime | None = None
    featured: bool
    featured_at: datetime | None = None
    onboarding_status: str
    document_review_status: str
    documents_submitted_at: datetime | None = None
    account_setup_at: datetime | None = None
    profile_completeness: int
    documents_completeness: int
    rating: float
    review_count: int
    created_by_admin: bool
    version: int
    created_at: datetime
    updated_at: datetime

class CredentialsOut(CamelModel):
    email: str
    setup_token: str
    setup_url: str
    setup_expires_at: datetime

class MerchantCreatedResponse(CamelModel):
    data: MerchantOut
    credentials: CredentialsOut
    message: str

class SetupInfoOut(CamelModel):
    business_name: str
    email: str
    phone: str | None = None
    business_type: str | None = None
    address: str | None = None
    setup_expires_at: datetime

class HistoryEntryOut(CamelModel):
    id: str
    merchant_id: str
    action: str
    performed_by: str | None = None
    performed_at: datetime
    notes: str | None = None
    documents_involved: list[str] | None = None

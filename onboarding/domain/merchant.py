"""SQLAlchemy ORM model for Merchants.

A merchant row carries the business profile, the onboarding lifecycle
(status, review status, flags), the derived completeness / rating fields and
the hashed single-use credential tokens.

``version`` is the optimistic-locking counter: every ORM flush of a merchant
checks and increments it, so concurrent writers surface a conflict instead of
silently overwriting each other.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from onboarding.db.base import Base
from onboarding.domain.mixins import TenantMixin, TimestampMixin


class OnboardingStatus(str, Enum):
    CREDENTIALS_SENT = "credentials_sent"
    ACCOUNT_SETUP = "account_setup"
    DOCUMENTS_SUBMITTED = "documents_submitted"
    UNDER_REVIEW = "under_review"
    COMPLETED = "completed"


class DocumentReviewStatus(str, Enum):
    INCOMPLETE = "incomplete"
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class Merchant(Base, TenantMixin, TimestampMixin):
    __tablename__ = "merchants"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # Required profile
    business_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    business_type: Mapped[Optional[str]] = mapped_column(String(100), index=True, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Optional profile
    landmark: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    year_established: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    logo: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    business_hours: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    # Lifecycle flags (orthogonal to onboarding_status)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    featured_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    onboarding_status: Mapped[str] = mapped_column(
        String(50),
        default=OnboardingStatus.CREDENTIALS_SENT.value,
        nullable=False,
        index=True,
    )
    document_review_status: Mapped[str] = mapped_column(
        String(50),
        default=DocumentReviewStatus.INCOMPLETE.value,
        nullable=False,
        index=True,
    )
    documents_submitted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), index=True, nullable=True
    )
    account_setup_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Derived (recomputed before every write)
    profile_completeness: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    documents_completeness: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    review_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Credentials (token columns hold SHA-256 digests)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    setup_token_hash: Mapped[Optional[str]] = mapped_column(String(64), index=True, nullable=True)
    setup_token_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reset_token_hash: Mapped[Optional[str]] = mapped_column(String(64), index=True, nullable=True)
    reset_token_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Provenance
    created_by_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_by_admin_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    documents: Mapped[List["MerchantDocument"]] = relationship(
        back_populates="merchant", lazy="raise"
    )
    history: Mapped[List["VerificationHistoryEntry"]] = relationship(
        back_populates="merchant", lazy="raise"
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Merchant {self.business_name} ({self.onboarding_status})>"

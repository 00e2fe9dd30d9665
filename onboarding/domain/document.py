"""SQLAlchemy ORM model for merchant verification documents."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from onboarding.db.base import Base
from onboarding.domain.mixins import TenantMixin, TimestampMixin


class DocumentType(str, Enum):
    BUSINESS_REGISTRATION = "businessRegistration"
    ID_DOCUMENT = "idDocument"
    UTILITY_BILL = "utilityBill"
    ADDITIONAL = "additionalDoc"


REQUIRED_DOCUMENT_TYPES: tuple[DocumentType, ...] = (
    DocumentType.BUSINESS_REGISTRATION,
    DocumentType.ID_DOCUMENT,
    DocumentType.UTILITY_BILL,
)


class DocumentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Partial index predicate: one active row per (merchant, required type)
_ACTIVE_REQUIRED = text("is_active = 1 AND document_type != 'additionalDoc'")
_ACTIVE_REQUIRED_PG = text("is_active AND document_type != 'additionalDoc'")


class MerchantDocument(Base, TenantMixin, TimestampMixin):
    """Metadata for one uploaded artifact; the bytes live in object storage."""

    __tablename__ = "merchant_documents"
    __table_args__ = (
        Index(
            "uq_merchant_documents_active_required",
            "merchant_id",
            "document_type",
            unique=True,
            sqlite_where=_ACTIVE_REQUIRED,
            postgresql_where=_ACTIVE_REQUIRED_PG,
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    merchant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    document_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # Object storage reference
    storage_locator: Mapped[str] = mapped_column(String(500), nullable=False)
    original_filename: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    file_size_bytes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    uploaded_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # Review: pending | approved | rejected
    status: Mapped[str] = mapped_column(
        String(20), default=DocumentStatus.PENDING.value, nullable=False, index=True
    )
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Superseded / removed rows stay for the audit trail
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    deactivated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    merchant: Mapped["Merchant"] = relationship(back_populates="documents", lazy="raise")

    @property
    def is_required(self) -> bool:
        return self.document_type != DocumentType.ADDITIONAL.value

"""SQLAlchemy ORM model for the merchant verification history."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from onboarding.db.base import Base
from onboarding.domain.mixins import TenantMixin, utcnow


class HistoryAction(str, Enum):
    SUBMITTED = "submitted"
    RESUBMITTED = "resubmitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVATED = "activated"
    DEACTIVATED = "deactivated"
    FEATURED = "featured"
    UNFEATURED = "unfeatured"


class VerificationHistoryEntry(Base, TenantMixin):
    __tablename__ = "verification_history"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    merchant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    performed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    documents_involved: Mapped[Optional[list[Any]]] = mapped_column(JSON, nullable=True)

    # No updated_at: history rows are append-only
    performed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    merchant: Mapped["Merchant"] = relationship(back_populates="history", lazy="raise")

"""Domain package — all ORM models are imported here so Alembic autogenerate detects them.

Folder intent:
  merchant.py  — Merchant profile, onboarding lifecycle and derived scores
  document.py  — Verification document metadata (bytes live in object storage)
  history.py   — Append-only verification history
  review.py    — Customer reviews (rating aggregate trigger source)
  audit.py     — Immutable request audit trail (never updated or deleted)
  mixins.py    — Shared TimestampMixin, TenantMixin, UTC helpers
"""

from onboarding.domain.audit import AuditTrail
from onboarding.domain.document import DocumentStatus, DocumentType, MerchantDocument
from onboarding.domain.history import HistoryAction, VerificationHistoryEntry
from onboarding.domain.merchant import DocumentReviewStatus, Merchant, OnboardingStatus
from onboarding.domain.review import Review

__all__ = [
    "AuditTrail",
    "DocumentReviewStatus",
    "DocumentStatus",
    "DocumentType",
    "HistoryAction",
    "Merchant",
    "MerchantDocument",
    "OnboardingStatus",
    "Review",
    "VerificationHistoryEntry",
]

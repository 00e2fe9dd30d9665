"""Document Pydantic schemas (upload summaries, review requests, stats)."""


from datetime import datetime

from pydantic import Field

from onboarding.schemas.common import CamelModel


class DocumentOut(CamelModel):
    id: str
    merchant_id: str
    document_type: str
    storage_locator: str
    original_filename: str | None = None
    file_size_bytes: int | None = None
    mime_type: str | None = None
    description: str | None = None
    uploaded_by: str | None = None
    status: str
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None
    is_active: bool
    is_required: bool
    created_at: datetime


class UploadedDocumentSummary(CamelModel):
    id: str
    document_type: str
    original_filename: str | None = None
    file_size_bytes: int | None = None
    status: str


class DocumentUploadOut(CamelModel):
    merchant_id: str
    uploaded: list[UploadedDocumentSummary]
    profile_completeness: int
    documents_completeness: int
    missing_documents: list[str]
    onboarding_status: str
    document_review_status: str


class DocumentReviewRequest(CamelModel):
    status: str
    admin_notes: str | None = None


class BulkDocumentReviewRequest(CamelModel):
    document_ids: list[str] = Field(default_factory=list)
    status: str
    admin_notes: str | None = None


class BulkDocumentReviewOut(CamelModel):
    modified_count: int
    not_found: list[str]


class DocumentStatsOut(CamelModel):
    by_status: dict[str, int]
    by_type: dict[str, int]
    pending_reviews: int
    recent_uploads: int
    total_documents: int

"""Admin document review router (/api/v1/documents)."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding.core.config import Settings
from onboarding.core.deps import Actor, get_settings, require_admin
from onboarding.core.response import DataResponse
from onboarding.db.base import get_db
from onboarding.schemas.document import (
    BulkDocumentReviewOut,
    BulkDocumentReviewRequest,
    DocumentOut,
    DocumentReviewRequest,
    DocumentStatsOut,
)
from onboarding.services.documents import DocumentStore

router = APIRouter(prefix="/documents", tags=["Documents"])


def _svc(session: AsyncSession, settings: Settings) -> DocumentStore:
    return DocumentStore(session, settings.default_client_id)


@router.get("", response_model=DataResponse[list[DocumentOut]])
async def list_documents(
    filter_status: str | None = Query(default=None, alias="status"),
    document_type: str | None = Query(default=None, alias="documentType"),
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Active documents across all merchants, newest first."""
    documents = await _svc(session, settings).list_documents(
        status=filter_status, document_type=document_type
    )
    return {"data": [DocumentOut.model_validate(d) for d in documents]}


@router.get("/stats", response_model=DataResponse[DocumentStatsOut])
async def document_stats(
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    stats = await _svc(session, settings).get_stats()
    return {"data": DocumentStatsOut(**stats)}


@router.get("/{document_id}", response_model=DataResponse[DocumentOut])
async def get_document(
    document_id: str,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    document = await _svc(session, settings).get(document_id)
    return {"data": DocumentOut.model_validate(document)}


@router.post("/bulk-review", response_model=DataResponse[BulkDocumentReviewOut])
async def bulk_review_documents(
    body: BulkDocumentReviewRequest,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    updated, unknown = await _svc(session, settings).bulk_review(
        body.document_ids, body.status, body.admin_notes, actor.id
    )
    return {"data": BulkDocumentReviewOut(modified_count=updated, not_found=unknown)}


@router.put("/{document_id}/review", response_model=DataResponse[DocumentOut])
async def review_document(
    document_id: str,
    body: DocumentReviewRequest,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Approve or reject one document. The merchant's verified flag is untouched."""
    document = await _svc(session, settings).review(
        document_id, body.status, body.admin_notes, actor.id
    )
    return {"data": DocumentOut.model_validate(document)}


@router.delete("/{document_id}", response_model=DataResponse[DocumentOut])
async def deactivate_document(
    document_id: str,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Soft-remove a document; the record stays for the audit trail."""
    document = await _svc(session, settings).deactivate(document_id, actor.id)
    return {"data": DocumentOut.model_validate(document)}

"""Merchant onboarding router: provisioning, setup, documents and admin actions.

Pattern (same for every v1 router):
  1. Inject DB session + caller identity via Depends
  2. Instantiate the service with (session, settings.default_client_id)
  3. Call service methods and wrap the result in the response envelope

File handling for document uploads is an HTTP concern and stays here; the
bytes go to object storage and only the locator reaches the document store.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from onboarding.core.config import Settings
from onboarding.core.deps import (
    Actor,
    ensure_merchant_access,
    get_actor,
    get_notifier,
    get_settings,
    get_storage,
    require_admin,
)
from onboarding.core.exceptions import (
    NotFoundError,
    PayloadTooLargeError,
    TokenInvalidError,
    UnsupportedMediaTypeError,
    ValidationError,
)
from onboarding.core.pagination import PaginationParams
from onboarding.core.response import DataResponse, ListResponse, paginated
from onboarding.db.base import get_db, get_session_factory
from onboarding.domain.document import DocumentType
from onboarding.domain.mixins import ensure_utc
from onboarding.schemas.bulk import (
    BulkCreatedItem,
    BulkCreateFailure,
    BulkCreateOut,
    BulkCreateRequest,
    BulkFeaturedRequest,
    BulkOperationOut,
    BulkStatusRequest,
    BulkVerifyRequest,
)
from onboarding.schemas.common import MessageResponse
from onboarding.schemas.document import DocumentOut, DocumentUploadOut, UploadedDocumentSummary
from onboarding.schemas.merchant import (
    AdminNotesRequest,
    CredentialsOut,
    FeaturedRequest,
    HistoryEntryOut,
    MerchantAdminCreate,
    MerchantCreatedResponse,
    MerchantOut,
    MerchantProfileUpdate,
    MerchantRegister,
    PasswordForgotRequest,
    PasswordResetRequest,
    SetupCompleteRequest,
    SetupInfoOut,
    StatusRequest,
)
from onboarding.schemas.review import ReviewCreate, ReviewOut
from onboarding.services import completeness
from onboarding.services.bulk import BulkOperationsCoordinator, BulkReport
from onboarding.services.documents import DocumentMeta, DocumentStore
from onboarding.services.notifications import NotificationDispatcher
from onboarding.services.provisioning import AccountProvisioningService, ProvisionedMerchant
from onboarding.services.rating import RatingAggregator
from onboarding.services.reviews import ReviewService
from onboarding.services.storage import LocalObjectStorage
from onboarding.services.verification import VerificationStateMachine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/merchants", tags=["Merchants"])

_ALLOWED_CONTENT_TYPES: dict[str, str] = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
}
_ALLOWED_EXTENSIONS = {".pdf", ".jpg", ".jpeg", ".png", ".gif", ".doc", ".docx"}
_SORTABLE_FIELDS = {
    "created_at",
    "updated_at",
    "business_name",
    "documents_submitted_at",
    "profile_completeness",
    "documents_completeness",
    "rating",
}


# ------------------------------------------------------------------
# Helpers: instantiate services with session + default client
# ------------------------------------------------------------------

def _machine(session: AsyncSession, settings: Settings) -> VerificationStateMachine:
    return VerificationStateMachine(session, settings.default_client_id)


def _provisioning(
    session: AsyncSession, settings: Settings, notifier: NotificationDispatcher
) -> AccountProvisioningService:
    return AccountProvisioningService(session, settings.default_client_id, settings, notifier)


def _credentials(provisioned: ProvisionedMerchant) -> CredentialsOut:
    return CredentialsOut(
        email=provisioned.merchant.email,
        setup_token=provisioned.setup_token,
        setup_url=provisioned.setup_url,
        setup_expires_at=provisioned.setup_expires_at,
    )


def _bulk_out(report: BulkReport) -> BulkOperationOut:
    return BulkOperationOut(
        results=report.results,
        modified_count=report.modified_count,
        succeeded=report.succeeded,
        skipped=report.skipped,
    )


# ------------------------------------------------------------------
# Shared file validation (HTTP concern, stays in the router)
# ------------------------------------------------------------------

def _check_file_type(file: UploadFile) -> None:
    """Accept when either the content type or the extension is allowed."""
    filename = (file.filename or "").lower()
    by_content_type = (file.content_type or "") in _ALLOWED_CONTENT_TYPES
    by_extension = any(filename.endswith(ext) for ext in _ALLOWED_EXTENSIONS)
    if not (by_content_type or by_extension):
        accepted = ", ".join(sorted(_ALLOWED_EXTENSIONS))
        raise UnsupportedMediaTypeError(
            f"Unsupported file type '{file.content_type}' for '{file.filename}'. "
            f"Accepted formats: {accepted}"
        )


async def _read_upload(file: UploadFile, settings: Settings) -> bytes:
    _check_file_type(file)
    limit = settings.max_upload_size_bytes
    too_large = PayloadTooLargeError(
        f"File '{file.filename}' exceeds the {settings.max_upload_size_mb}MB limit"
    )
    if file.size is not None and file.size > limit:
        raise too_large
    # Never buffer more than one byte past the limit
    contents = await file.read(limit + 1)
    if len(contents) == 0:
        raise ValidationError(f"Uploaded file '{file.filename}' is empty", fields=["file"])
    if len(contents) > limit:
        raise too_large
    return contents


# ------------------------------------------------------------------
# Provisioning and self-service (public or token-authenticated)
# ------------------------------------------------------------------

@router.post(
    "/admin/create",
    response_model=MerchantCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def admin_create_merchant(
    body: MerchantAdminCreate,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Create a merchant account and issue a one-time setup token."""
    provisioned = await _provisioning(session, settings, notifier).create_by_admin(body, actor.id)
    return MerchantCreatedResponse(
        data=MerchantOut.model_validate(provisioned.merchant),
        credentials=_credentials(provisioned),
        message="Merchant created; setup credentials dispatched",
    )


@router.post("/admin/bulk-create", response_model=DataResponse[BulkCreateOut])
async def admin_bulk_create_merchants(
    body: BulkCreateRequest,
    actor: Actor = Depends(require_admin),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    coordinator = BulkOperationsCoordinator(
        session_factory, settings.default_client_id, settings, notifier
    )
    report = await coordinator.bulk_create(body.merchants, actor.id)
    return {
        "data": BulkCreateOut(
            created=[
                BulkCreatedItem(
                    index=index,
                    merchant_id=provisioned.merchant.id,
                    credentials=_credentials(provisioned),
                )
                for index, provisioned in report.created
            ],
            failed=[
                BulkCreateFailure(
                    index=f.index, email=f.email, reason=f.reason, message=f.message
                )
                for f in report.failed
            ],
            created_count=len(report.created),
        )
    }


@router.post(
    "/register", response_model=DataResponse[MerchantOut], status_code=status.HTTP_201_CREATED
)
async def register_merchant(
    body: MerchantRegister,
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    merchant = await _provisioning(session, settings, notifier).register(body)
    return {"data": MerchantOut.model_validate(merchant)}


@router.get("/setup/{token}", response_model=DataResponse[SetupInfoOut])
async def get_setup_info(
    token: str,
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Prefill data for the account setup page. Unknown token → 404, expired → 410."""
    try:
        merchant = await _provisioning(session, settings, notifier).get_setup_info(token)
    except TokenInvalidError:
        raise NotFoundError("Setup token") from None
    return {
        "data": SetupInfoOut(
            business_name=merchant.business_name,
            email=merchant.email,
            phone=merchant.phone,
            business_type=merchant.business_type,
            address=merchant.address,
            setup_expires_at=ensure_utc(merchant.setup_token_expires_at),
        )
    }


@router.post("/setup/{token}", response_model=DataResponse[MerchantOut])
async def complete_setup(
    token: str,
    body: SetupCompleteRequest,
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    merchant = await _provisioning(session, settings, notifier).complete_setup(token, body)
    return {"data": MerchantOut.model_validate(merchant)}


@router.post("/password/forgot", response_model=MessageResponse)
async def forgot_password(
    body: PasswordForgotRequest,
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    await _provisioning(session, settings, notifier).request_password_reset(body.email)
    return MessageResponse(message="Password reset instructions dispatched")


@router.post("/password/reset/{token}", response_model=MessageResponse)
async def reset_password(
    token: str,
    body: PasswordResetRequest,
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    await _provisioning(session, settings, notifier).reset_password(token, body.password)
    return MessageResponse(message="Password has been reset")


# ------------------------------------------------------------------
# Admin listings
# ------------------------------------------------------------------

@router.get("", response_model=ListResponse[MerchantOut])
async def list_merchants(
    verified: bool | None = Query(default=None),
    featured: bool | None = Query(default=None),
    is_active: bool | None = Query(default=None, alias="isActive"),
    onboarding_status: str | None = Query(default=None, alias="onboardingStatus"),
    document_review_status: str | None = Query(default=None, alias="documentReviewStatus"),
    business_type: str | None = Query(default=None, alias="businessType"),
    pagination: PaginationParams = Depends(),
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """List merchants (paginated). Filters are exact matches."""
    pagination.require_sort_in(_SORTABLE_FIELDS)
    items, total = await _machine(session, settings).list_merchants(
        offset=pagination.offset,
        limit=pagination.limit,
        order_by=pagination.sort,
        order=pagination.order,
        filters={
            "verified": verified,
            "featured": featured,
            "is_active": is_active,
            "onboarding_status": onboarding_status,
            "document_review_status": document_review_status,
            "business_type": business_type,
        },
    )
    return paginated(
        [MerchantOut.model_validate(m) for m in items],
        total, pagination.page, pagination.limit,
    )


@router.get("/pending-review", response_model=DataResponse[list[MerchantOut]])
async def list_pending_review(
    limit: int = Query(default=100, ge=1, le=500),
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Complete, unverified merchants awaiting a decision, oldest submission first."""
    merchants = await _machine(session, settings).pending_review(limit=limit)
    return {"data": [MerchantOut.model_validate(m) for m in merchants]}


# ------------------------------------------------------------------
# Bulk admin operations (each id in its own transaction)
# ------------------------------------------------------------------

def _coordinator(
    session_factory: async_sessionmaker[AsyncSession], settings: Settings
) -> BulkOperationsCoordinator:
    return BulkOperationsCoordinator(session_factory, settings.default_client_id)


@router.post("/bulk-verify", response_model=DataResponse[BulkOperationOut])
async def bulk_verify(
    body: BulkVerifyRequest,
    actor: Actor = Depends(require_admin),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
):
    report = await _coordinator(session_factory, settings).bulk_verify(
        body.merchant_ids, body.notes, actor.id
    )
    return {"data": _bulk_out(report)}


@router.put("/bulk-status", response_model=DataResponse[BulkOperationOut])
async def bulk_status(
    body: BulkStatusRequest,
    actor: Actor = Depends(require_admin),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
):
    report = await _coordinator(session_factory, settings).bulk_set_status(
        body.merchant_ids, body.is_active, actor.id
    )
    return {"data": _bulk_out(report)}


@router.post("/bulk-featured", response_model=DataResponse[BulkOperationOut])
async def bulk_featured(
    body: BulkFeaturedRequest,
    actor: Actor = Depends(require_admin),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
):
    report = await _coordinator(session_factory, settings).bulk_set_featured(
        body.merchant_ids, body.featured, actor.id
    )
    return {"data": _bulk_out(report)}


# ------------------------------------------------------------------
# Single merchant
# ------------------------------------------------------------------

@router.get("/{merchant_id}", response_model=DataResponse[MerchantOut])
async def get_merchant(
    merchant_id: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    ensure_merchant_access(actor, merchant_id)
    merchant = await _machine(session, settings).get_merchant(merchant_id)
    return {"data": MerchantOut.model_validate(merchant)}


@router.put("/{merchant_id}", response_model=DataResponse[MerchantOut])
async def update_merchant(
    merchant_id: str,
    body: MerchantProfileUpdate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    ensure_merchant_access(actor, merchant_id)
    merchant = await _provisioning(session, settings, notifier).update_profile(
        merchant_id, body, actor.id
    )
    return {"data": MerchantOut.model_validate(merchant)}


# ------------------------------------------------------------------
# Documents
# ------------------------------------------------------------------

@router.put("/{merchant_id}/documents", response_model=DataResponse[DocumentUploadOut])
async def upload_documents(
    merchant_id: str,
    business_registration: UploadFile | None = File(default=None, alias="businessRegistration"),
    id_document: UploadFile | None = File(default=None, alias="idDocument"),
    utility_bill: UploadFile | None = File(default=None, alias="utilityBill"),
    additional_docs: list[UploadFile] | None = File(default=None, alias="additionalDocs"),
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    storage: LocalObjectStorage = Depends(get_storage),
):
    """Upload any subset of the required documents plus up to N additional ones."""
    ensure_merchant_access(actor, merchant_id)

    files: list[tuple[str, UploadFile]] = [
        (doc_type.value, file)
        for doc_type, file in (
            (DocumentType.BUSINESS_REGISTRATION, business_registration),
            (DocumentType.ID_DOCUMENT, id_document),
            (DocumentType.UTILITY_BILL, utility_bill),
        )
        if file is not None
    ]
    extras = additional_docs or []
    if len(extras) > settings.max_additional_documents:
        raise ValidationError(
            f"At most {settings.max_additional_documents} additional documents are allowed",
            fields=["additionalDocs"],
        )
    files.extend((DocumentType.ADDITIONAL.value, file) for file in extras)
    if not files:
        raise ValidationError("No documents were uploaded", fields=["documents"])

    store = DocumentStore(session, settings.default_client_id)
    merchant = await _machine(session, settings).get_merchant(merchant_id)

    # Validate every file before anything is stored
    contents = [(doc_type, file, await _read_upload(file, settings)) for doc_type, file in files]

    uploaded = []
    for doc_type, file, data in contents:
        key = storage.build_key(merchant.id, doc_type, file.filename)
        locator = await storage.put(key, data)
        document = await store.submit(
            merchant.id,
            doc_type,
            DocumentMeta(
                storage_locator=locator,
                original_filename=file.filename,
                file_size_bytes=len(data),
                mime_type=file.content_type,
            ),
            uploaded_by=actor.id,
        )
        uploaded.append(document)

    active = await store.list_for_merchant(merchant.id)
    locators = {doc.document_type: doc.storage_locator for doc in active if doc.is_required}
    return {
        "data": DocumentUploadOut(
            merchant_id=merchant.id,
            uploaded=[UploadedDocumentSummary.model_validate(doc) for doc in uploaded],
            profile_completeness=merchant.profile_completeness,
            documents_completeness=merchant.documents_completeness,
            missing_documents=completeness.missing_documents(locators),
            onboarding_status=merchant.onboarding_status,
            document_review_status=merchant.document_review_status,
        )
    }


@router.get("/{merchant_id}/documents", response_model=DataResponse[list[DocumentOut]])
async def list_merchant_documents(
    merchant_id: str,
    include_inactive: bool = Query(default=False, alias="includeInactive"),
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    ensure_merchant_access(actor, merchant_id)
    # Superseded records are part of the audit trail; admins only
    include_inactive = include_inactive and actor.is_admin
    documents = await DocumentStore(session, settings.default_client_id).list_for_merchant(
        merchant_id, include_inactive=include_inactive
    )
    return {"data": [DocumentOut.model_validate(d) for d in documents]}


@router.get("/{merchant_id}/documents/{document_type}/view")
async def view_document(
    merchant_id: str,
    document_type: str,
    download: bool = Query(default=False),
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    storage: LocalObjectStorage = Depends(get_storage),
):
    """Stream the active document of a type; ``?download=true`` for an attachment."""
    ensure_merchant_access(actor, merchant_id)
    document = await DocumentStore(session, settings.default_client_id).get_active(
        merchant_id, document_type
    )
    data = await storage.get(document.storage_locator)
    filename = (document.original_filename or f"{document.document_type}").replace('"', "")
    disposition = "attachment" if download else "inline"
    return Response(
        content=data,
        media_type=document.mime_type or "application/octet-stream",
        headers={"Content-Disposition": f'{disposition}; filename="{filename}"'},
    )


# ------------------------------------------------------------------
# Admin verification actions
# ------------------------------------------------------------------

@router.put("/{merchant_id}/verify", response_model=DataResponse[MerchantOut])
async def verify_merchant(
    merchant_id: str,
    body: AdminNotesRequest | None = None,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    outcome = await _machine(session, settings).verify(
        merchant_id, actor.id, body.notes if body else None
    )
    return {"data": MerchantOut.model_validate(outcome.merchant)}


@router.put("/{merchant_id}/start-review", response_model=DataResponse[MerchantOut])
async def start_review(
    merchant_id: str,
    body: AdminNotesRequest | None = None,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    outcome = await _machine(session, settings).start_review(
        merchant_id, actor.id, body.notes if body else None
    )
    return {"data": MerchantOut.model_validate(outcome.merchant)}


@router.put("/{merchant_id}/reject", response_model=DataResponse[MerchantOut])
async def reject_merchant(
    merchant_id: str,
    body: AdminNotesRequest | None = None,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    outcome = await _machine(session, settings).reject(
        merchant_id, actor.id, body.notes if body else None
    )
    return {"data": MerchantOut.model_validate(outcome.merchant)}


@router.put("/{merchant_id}/featured", response_model=DataResponse[MerchantOut])
async def set_featured(
    merchant_id: str,
    body: FeaturedRequest,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    outcome = await _machine(session, settings).set_featured(merchant_id, body.featured, actor.id)
    return {"data": MerchantOut.model_validate(outcome.merchant)}


@router.put("/{merchant_id}/status", response_model=DataResponse[MerchantOut])
async def set_status(
    merchant_id: str,
    body: StatusRequest,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    outcome = await _machine(session, settings).set_active(merchant_id, body.is_active, actor.id)
    return {"data": MerchantOut.model_validate(outcome.merchant)}


@router.get("/{merchant_id}/history", response_model=DataResponse[list[HistoryEntryOut]])
async def get_history(
    merchant_id: str,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    entries = await _machine(session, settings).history(merchant_id)
    return {"data": [HistoryEntryOut.model_validate(e) for e in entries]}


# ------------------------------------------------------------------
# Reviews
# ------------------------------------------------------------------

@router.post(
    "/{merchant_id}/reviews",
    response_model=DataResponse[ReviewOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_review(
    merchant_id: str,
    body: ReviewCreate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
):
    review = await ReviewService(session, settings.default_client_id).create(
        merchant_id, actor.id, body
    )
    # The aggregate reads committed rows from its own session
    await session.commit()
    aggregator = RatingAggregator(session_factory, settings.default_client_id)
    background_tasks.add_task(aggregator.recompute, merchant_id)
    return {"data": ReviewOut.model_validate(review)}

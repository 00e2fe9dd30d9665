"""Merchant document repository — active-record lookups and aggregate counts."""

from datetime import datetime

from sqlalchemy import func, select

from onboarding.domain.document import REQUIRED_DOCUMENT_TYPES, MerchantDocument
from onboarding.repositories.base import BaseRepository


class MerchantDocumentRepository(BaseRepository[MerchantDocument]):
    model = MerchantDocument

    def _active_query(self):
        return self._base_query().where(MerchantDocument.is_active.is_(True))

    async def get_active_by_id(self, document_id: str) -> MerchantDocument | None:
        result = await self._session.execute(
            self._active_query().where(MerchantDocument.id == document_id)
        )
        return result.scalars().first()

    async def get_active(self, merchant_id: str, document_type: str) -> MerchantDocument | None:
        """Most recent active record of a type (the canonical one for required types)."""
        result = await self._session.execute(
            self._active_query()
            .where(MerchantDocument.merchant_id == merchant_id)
            .where(MerchantDocument.document_type == document_type)
            .order_by(MerchantDocument.created_at.desc())
        )
        return result.scalars().first()

    async def list_for_merchant(
        self, merchant_id: str, include_inactive: bool = False
    ) -> list[MerchantDocument]:
        q = self._base_query() if include_inactive else self._active_query()
        q = q.where(MerchantDocument.merchant_id == merchant_id).order_by(
            MerchantDocument.created_at.desc()
        )
        return list((await self._session.execute(q)).scalars().all())

    async def active_required(self, merchant_id: str) -> dict[str, MerchantDocument]:
        """Map of required document type -> active record."""
        required = [t.value for t in REQUIRED_DOCUMENT_TYPES]
        result = await self._session.execute(
            self._active_query()
            .where(MerchantDocument.merchant_id == merchant_id)
            .where(MerchantDocument.document_type.in_(required))
            .order_by(MerchantDocument.created_at.asc())
        )
        return {doc.document_type: doc for doc in result.scalars().all()}

    async def list_documents(
        self, status: str | None = None, document_type: str | None = None
    ) -> list[MerchantDocument]:
        q = self._active_query()
        if status:
            q = q.where(MerchantDocument.status == status)
        if document_type:
            q = q.where(MerchantDocument.document_type == document_type)
        q = q.order_by(MerchantDocument.created_at.desc())
        return list((await self._session.execute(q)).scalars().all())

    async def count_grouped_by(self, column_name: str) -> dict[str, int]:
        column = getattr(MerchantDocument, column_name)
        result = await self._session.execute(
            select(column, func.count(MerchantDocument.id))
            .where(MerchantDocument.client_id == self._client_id)
            .where(MerchantDocument.is_active.is_(True))
            .group_by(column)
        )
        return {key: count for key, count in result.all()}

    async def count_uploaded_since(self, since: datetime) -> int:
        result = await self._session.execute(
            select(func.count(MerchantDocument.id))
            .where(MerchantDocument.client_id == self._client_id)
            .where(MerchantDocument.is_active.is_(True))
            .where(MerchantDocument.created_at >= since)
        )
        return result.scalar_one()

"""Verification history repository — append and read only."""

from onboarding.domain.history import VerificationHistoryEntry
from onboarding.repositories.base import BaseRepository


class VerificationHistoryRepository(BaseRepository[VerificationHistoryEntry]):
    model = VerificationHistoryEntry

    def append(
        self,
        merchant_id: str,
        action: str,
        performed_by: str | None = None,
        notes: str | None = None,
        documents_involved: list[str] | None = None,
    ) -> VerificationHistoryEntry:
        return self.add(
            merchant_id=merchant_id,
            action=action,
            performed_by=performed_by,
            notes=notes,
            documents_involved=list(documents_involved or []),
        )

    async def list_for_merchant(self, merchant_id: str) -> list[VerificationHistoryEntry]:
        result = await self._session.execute(
            self._base_query()
            .where(VerificationHistoryEntry.merchant_id == merchant_id)
            .order_by(VerificationHistoryEntry.performed_at.asc())
        )
        return list(result.scalars().all())

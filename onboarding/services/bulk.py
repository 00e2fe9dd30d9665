"""Bulk admin operations over many merchants.

Each id is processed in its own session and transaction, so one bad id never
rolls back the others. Nothing is raised for an individual item: every id
gets an outcome string, ``succeeded`` or ``skipped:<Reason>``.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from onboarding.core.config import Settings
from onboarding.core.exceptions import AppException
from onboarding.schemas.merchant import MerchantAdminCreate
from onboarding.services.notifications import NotificationDispatcher
from onboarding.services.provisioning import AccountProvisioningService, ProvisionedMerchant
from onboarding.services.verification import TransitionOutcome, VerificationStateMachine

logger = logging.getLogger(__name__)

SUCCEEDED = "succeeded"
SKIPPED = "skipped"


def skipped(reason: str) -> str:
    return f"{SKIPPED}:{reason}"


@dataclass
class BulkReport:
    results: dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> list[str]:
        return [key for key, outcome in self.results.items() if outcome == SUCCEEDED]

    @property
    def skipped(self) -> list[str]:
        return [key for key, outcome in self.results.items() if outcome != SUCCEEDED]

    @property
    def modified_count(self) -> int:
        return len(self.succeeded)


@dataclass
class BulkCreateFailure:
    index: int
    email: str | None
    reason: str
    message: str


@dataclass
class BulkCreateReport:
    created: list[tuple[int, ProvisionedMerchant]] = field(default_factory=list)
    failed: list[BulkCreateFailure] = field(default_factory=list)


class BulkOperationsCoordinator:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        client_id: str,
        settings: Settings | None = None,
        notifier: NotificationDispatcher | None = None,
    ):
        self._session_factory = session_factory
        self._client_id = client_id
        self._settings = settings
        self._notifier = notifier

    # ------------------------------------------------------------------
    # Per-item isolation
    # ------------------------------------------------------------------

    async def _run_one(
        self,
        merchant_id: str,
        action: Callable[[VerificationStateMachine], Awaitable[TransitionOutcome]],
        unchanged_reason: str,
    ) -> str:
        try:
            async with self._session_factory() as session:
                outcome = await action(VerificationStateMachine(session, self._client_id))
                if not outcome.changed:
                    await session.rollback()
                    return skipped(unchanged_reason)
                await session.commit()
                return SUCCEEDED
        except AppException as exc:
            logger.info("Bulk item %s skipped: %s", merchant_id, exc.message)
            return skipped(exc.reason)
        except IntegrityError:
            logger.warning("Bulk item %s hit an integrity conflict", merchant_id)
            return skipped("Conflict")
        except Exception:
            logger.exception("Bulk item %s failed", merchant_id)
            return skipped("Error")

    async def _run_all(
        self,
        merchant_ids: list[str],
        make_action: Callable[[str], Callable[[VerificationStateMachine], Awaitable[TransitionOutcome]]],
        unchanged_reason: str,
    ) -> BulkReport:
        report = BulkReport()
        # Duplicate ids are processed once; order of first appearance is kept
        for merchant_id in dict.fromkeys(merchant_ids):
            report.results[merchant_id] = await self._run_one(
                merchant_id, make_action(merchant_id), unchanged_reason
            )
        logger.info(
            "Bulk operation finished: %d succeeded, %d skipped",
            report.modified_count, len(report.skipped),
        )
        return report

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def bulk_verify(
        self, merchant_ids: list[str], notes: str | None, actor_id: str | None
    ) -> BulkReport:
        return await self._run_all(
            merchant_ids,
            lambda merchant_id: lambda machine: machine.verify(merchant_id, actor_id, notes),
            "AlreadyVerified",
        )

    async def bulk_set_featured(
        self, merchant_ids: list[str], featured: bool, actor_id: str | None
    ) -> BulkReport:
        return await self._run_all(
            merchant_ids,
            lambda merchant_id: lambda machine: machine.set_featured(merchant_id, featured, actor_id),
            "Unchanged",
        )

    async def bulk_set_status(
        self, merchant_ids: list[str], is_active: bool, actor_id: str | None
    ) -> BulkReport:
        return await self._run_all(
            merchant_ids,
            lambda merchant_id: lambda machine: machine.set_active(merchant_id, is_active, actor_id),
            "Unchanged",
        )

    async def bulk_create(
        self, payloads: list[MerchantAdminCreate], actor_id: str | None
    ) -> BulkCreateReport:
        if self._settings is None or self._notifier is None:
            raise RuntimeError("bulk_create needs settings and a notification dispatcher")

        report = BulkCreateReport()
        for index, payload in enumerate(payloads):
            try:
                async with self._session_factory() as session:
                    service = AccountProvisioningService(
                        session, self._client_id, self._settings, self._notifier
                    )
                    provisioned = await service.create_by_admin(payload, actor_id)
                    await session.commit()
                report.created.append((index, provisioned))
            except AppException as exc:
                report.failed.append(
                    BulkCreateFailure(index, payload.email, exc.reason, exc.message)
                )
            except IntegrityError:
                report.failed.append(
                    BulkCreateFailure(
                        index, payload.email, "Conflict", "A merchant with this email already exists"
                    )
                )
            except Exception:
                logger.exception("Bulk create item %d failed", index)
                report.failed.append(
                    BulkCreateFailure(index, payload.email, "Error", "Unexpected error")
                )
        logger.info(
            "Bulk create finished: %d created, %d failed",
            len(report.created), len(report.failed),
        )
        return report

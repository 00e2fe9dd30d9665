"""Generic async repository with pagination, tenant isolation and optimistic locking."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from onboarding.core.exceptions import ConflictError
from onboarding.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Generic CRUD repository. All queries are filtered by client_id.

    Hard-delete is intentionally never exposed: merchants are deactivated and
    documents superseded instead.
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession, client_id: str):
        self._session = session
        self._client_id = client_id

    @property
    def session(self) -> AsyncSession:
        return self._session

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _base_query(self):
        """Return a SELECT filtered by client_id."""
        return select(self.model).where(self.model.client_id == self._client_id)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_id(self, entity_id: str) -> ModelT | None:
        result = await self._session.execute(
            self._base_query().where(self.model.id == entity_id)
        )
        return result.scalars().first()

    async def list(
        self,
        *,
        offset: int = 0,
        limit: int = 20,
        order_by: str = "created_at",
        order: str = "desc",
        filters: dict[str, Any] | None = None,
    ) -> tuple[list[ModelT], int]:
        """Return (items, total_count) with pagination and optional column filters."""
        q = self._base_query()

        # Apply simple equality filters
        if filters:
            for col_name, value in filters.items():
                if value is not None and hasattr(self.model, col_name):
                    q = q.where(getattr(self.model, col_name) == value)

        # Count
        count_q = select(func.count()).select_from(q.subquery())
        total = (await self._session.execute(count_q)).scalar_one()

        # Order + paginate
        col = getattr(self.model, order_by, None)
        if col is not None:
            q = q.order_by(col.desc() if order == "desc" else col.asc())
        q = q.offset(offset).limit(limit)

        items = (await self._session.execute(q)).scalars().all()
        return list(items), total

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def add(self, **kwargs: Any) -> ModelT:
        """Stage a new row in the session without flushing."""
        instance = self.model(client_id=self._client_id, **kwargs)
        self._session.add(instance)
        return instance

    async def create(self, **kwargs: Any) -> ModelT:
        instance = self.add(**kwargs)
        await self.save(instance)
        await self._session.refresh(instance)
        return instance

    async def save(self, instance: ModelT) -> ModelT:
        """Flush pending changes; a lost update or a unique-constraint race becomes a 409."""
        self._session.add(instance)
        try:
            await self._session.flush()
        except StaleDataError as exc:
            raise ConflictError(
                f"{self.model.__name__} was modified concurrently; reload and retry"
            ) from exc
        except IntegrityError as exc:
            # A concurrent writer got there first (e.g. two active copies of a required document)
            raise ConflictError(
                f"{self.model.__name__} conflicts with a concurrent write; reload and retry"
            ) from exc
        return instance

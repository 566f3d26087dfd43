"""Async repository pattern for database access.

Provides a generic base repository with shop isolation, pagination and
storage-error translation. Verticals subclass this to add domain-specific
queries and upserts.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import storage_errors
from core.models.base import Base

# ---------------------------------------------------------------------------
# Type variable for model classes
# ---------------------------------------------------------------------------

ModelT = TypeVar("ModelT", bound=Base)


# ---------------------------------------------------------------------------
# Base repository
# ---------------------------------------------------------------------------

class BaseRepository(Generic[ModelT]):
    """Generic async repository with shop isolation.

    Subclass and set `model` to your SQLAlchemy model::

        class SubscriptionRepository(BaseRepository[BackInStockSubscription]):
            model = BackInStockSubscription

            async def for_email(self, shop: str, email: str):
                stmt = self.scoped(shop).where(self.model.customer_email == email)
                ...

    Every query built through `scoped()` filters on the shop column, so a
    subclass cannot accidentally read across shops.
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    def scoped(self, shop: str):
        """SELECT statement restricted to one shop."""
        return select(self.model).where(self.model.shop == shop)

    # -- Dialect --

    @property
    def dialect_name(self) -> str:
        return self.session.get_bind().dialect.name

    # -- List with pagination --

    async def list(
        self,
        shop: str,
        page: int = 1,
        limit: int = 50,
        filters: dict[str, Any] | None = None,
    ) -> tuple[list[dict], int]:
        """List rows with pagination and optional equality filters.

        Returns (items, total_count).
        """
        stmt = self.scoped(shop)
        count_stmt = select(func.count()).select_from(self.model).where(
            self.model.shop == shop
        )

        if filters:
            for col_name, value in filters.items():
                if hasattr(self.model, col_name) and value is not None:
                    stmt = stmt.where(getattr(self.model, col_name) == value)
                    count_stmt = count_stmt.where(getattr(self.model, col_name) == value)

        offset = (page - 1) * limit
        stmt = stmt.order_by(self.model.id).offset(offset).limit(limit)

        async with storage_errors(f"list {self.model.__tablename__}"):
            result = await self.session.execute(stmt)
            items = [row.to_dict() for row in result.scalars().all()]

            count_result = await self.session.execute(count_stmt)
            total = count_result.scalar() or 0

        return items, total

    # -- Get by ID --

    async def get_row(self, shop: str, item_id: int) -> ModelT | None:
        """Get a single row by ID with shop isolation."""
        stmt = self.scoped(shop).where(self.model.id == item_id)
        async with storage_errors(f"get {self.model.__tablename__}"):
            result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # -- Delete --

    async def delete_row(self, row: ModelT) -> None:
        async with storage_errors(f"delete {self.model.__tablename__}"):
            await self.session.delete(row)
            await self.session.flush()

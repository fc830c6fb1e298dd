"""Base repository with common tenant-scoped operations.

Provides a generic repository pattern for SQLAlchemy models with async
support. Every query is filtered by the tenant the repository was built for;
the tenant itself is trusted and supplied by the caller.

Usage:
    from brokerdesk.db.repositories.base import BaseRepository

    class CustomerRepository(BaseRepository[Customer, UUID]):
        pass

    repo = CustomerRepository(db_session, tenant_id)
    customer = await repo.get(customer_id)
"""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.core.exceptions import NotFoundError
from brokerdesk.db.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)
PKType = TypeVar("PKType", bound=UUID | int | str)


class BaseRepository(Generic[ModelType, PKType]):
    """Generic tenant-scoped repository for SQLAlchemy models.

    Writes only flush; committing belongs to the caller's unit of work.

    Type Parameters:
        ModelType: The SQLAlchemy model class (must have a ``tenant_id`` column)
        PKType: The type of the primary key (UUID, int, or str)

    Attributes:
        model: The model class
        db: The database session
        tenant_id: Tenant every query is restricted to
    """

    model: type[ModelType]
    resource_name: str = "resource"

    def __init__(self, db: AsyncSession, tenant_id: UUID):
        """Initialize repository with database session.

        Args:
            db: Async SQLAlchemy session
            tenant_id: Owning tenant for all reads and writes
        """
        self.db = db
        self.tenant_id = tenant_id

    def __init_subclass__(cls, **kwargs):
        """Extract model type from generic parameter."""
        super().__init_subclass__(**kwargs)
        for base in getattr(cls, "__orig_bases__", []):
            args = getattr(base, "__args__", None)
            if args and len(args) >= 1:
                first_arg = args[0]
                # Check if it's an actual class (not a TypeVar)
                if isinstance(first_arg, type) and issubclass(first_arg, Base):
                    cls.model = first_arg
                    break

    def _select(self):
        """Select statement restricted to this tenant."""
        return select(self.model).where(self.model.tenant_id == self.tenant_id)

    async def get(self, pk: PKType) -> ModelType | None:
        """Get a single record of this tenant by primary key.

        Args:
            pk: Primary key value

        Returns:
            Model instance or None if not found in this tenant
        """
        stmt = self._select().where(self._get_pk_column() == pk)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_raise(self, pk: PKType) -> ModelType:
        """Get a single record of this tenant by primary key or raise.

        Args:
            pk: Primary key value

        Returns:
            Model instance

        Raises:
            NotFoundError: If the record does not exist in this tenant
        """
        result = await self.get(pk)
        if result is None:
            raise NotFoundError(self.resource_name, pk)
        return result

    async def get_unscoped(self, pk: PKType) -> ModelType | None:
        """Get a record by primary key regardless of tenant.

        Only for detecting cross-tenant references; callers must check
        ``tenant_id`` on the result before acting on it.
        """
        return await self.db.get(self.model, pk)

    async def get_many(self, pks: Sequence[PKType]) -> list[ModelType]:
        """Get multiple records of this tenant by primary keys.

        Args:
            pks: List of primary key values

        Returns:
            List of found models (may be fewer than requested if some not found)
        """
        if not pks:
            return []

        stmt = self._select().where(self._get_pk_column().in_(pks))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count(self) -> int:
        """Count records of this tenant.

        Returns:
            Total count of records
        """
        stmt = (
            select(func.count(self._get_pk_column()))
            .where(self.model.tenant_id == self.tenant_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def create(self, obj: ModelType) -> ModelType:
        """Add a new record owned by this tenant and flush it.

        Args:
            obj: Model instance to create

        Returns:
            Created model instance
        """
        obj.tenant_id = self.tenant_id
        self.db.add(obj)
        await self.db.flush()
        return obj

    async def update(self, obj: ModelType, updates: dict[str, Any]) -> ModelType:
        """Update a record with given values and flush.

        Args:
            obj: Model instance to update
            updates: Dictionary of field: value to update

        Returns:
            Updated model instance
        """
        for field, value in updates.items():
            if hasattr(obj, field):
                setattr(obj, field, value)

        await self.db.flush()
        return obj

    async def delete(self, obj: ModelType) -> None:
        """Delete a record and flush.

        Args:
            obj: Model instance to delete
        """
        await self.db.delete(obj)
        await self.db.flush()

    def _get_pk_column(self):
        """Get the primary key column for this model.

        Returns:
            The primary key column

        Raises:
            ValueError: If no primary key found
        """
        pk_cols = self.model.__mapper__.primary_key
        if not pk_cols:
            raise ValueError(f"No primary key found for {self.model.__name__}")
        return pk_cols[0]

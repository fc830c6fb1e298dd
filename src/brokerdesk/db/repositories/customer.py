"""Customer repository for identifier and name lookups."""

from uuid import UUID

from brokerdesk.db.models.customer import Customer
from brokerdesk.db.repositories.base import BaseRepository
from brokerdesk.utils.text import normalize_name


class CustomerRepository(BaseRepository[Customer, UUID]):
    """Repository for Customer model operations.

    Provides the lookups candidate finding needs in addition to base CRUD
    operations. All queries are restricted to the repository's tenant.
    """

    model = Customer
    resource_name = "customer"

    async def get_by_national_id(self, national_id: str) -> Customer | None:
        """Get the customer holding a national ID.

        Args:
            national_id: Trimmed national ID

        Returns:
            The customer, or None if no customer of this tenant holds it
        """
        stmt = self._select().where(Customer.national_id == national_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_tax_id(self, tax_id: str) -> Customer | None:
        """Get the customer holding a tax ID.

        Args:
            tax_id: Trimmed tax ID

        Returns:
            The customer, or None if no customer of this tenant holds it
        """
        stmt = self._select().where(Customer.tax_id == tax_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def search_by_name(self, term: str, *, limit: int = 10) -> list[Customer]:
        """Find customers whose name contains a term.

        The term is folded the same way as the stored name key (Turkish
        letters to ASCII, upper case, single spaces), so "AYSE YILMAZ" and
        "ayşe yılmaz" both find "Ayşe Yılmaz". A term may hit the first name,
        the last name or both. Results are ordered by creation time so the
        same store state always yields the same list.

        Args:
            term: Free-text name fragment
            limit: Maximum customers to return

        Returns:
            Matching customers, oldest first
        """
        key = normalize_name(term)
        if not key:
            return []

        stmt = (
            self._select()
            .where(Customer.name_key.contains(key, autoescape=True))
            .order_by(Customer.created_at, Customer.customer_id)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_all(self) -> list[Customer]:
        """Load every customer of the tenant, oldest first.

        Used by bulk import to build an in-memory snapshot.
        """
        stmt = self._select().order_by(Customer.created_at, Customer.customer_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

"""FastAPI dependencies for database sessions and tenant resolution."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for FastAPI to inject database sessions.

    Sessions come from the factory the application stored on ``app.state``
    at startup. Services open their own unit of work on the session.

    Usage:
        @router.post("/merge")
        async def merge(db: Annotated[AsyncSession, Depends(get_db)]):
            ...
    """
    async with request.app.state.session_factory() as session:
        yield session


def get_required_tenant_id_from_header(
    x_tenant_id: Annotated[str, Header(alias="X-Tenant-ID")],
) -> UUID:
    """Extract required tenant ID from X-Tenant-ID header.

    The tenant is authenticated upstream; this only parses it.

    Args:
        x_tenant_id: The X-Tenant-ID header value (required)

    Returns:
        Parsed UUID

    Raises:
        HTTPException: If header is missing or not a valid UUID
    """
    try:
        return UUID(x_tenant_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Tenant-ID header: must be a valid UUID",
        )

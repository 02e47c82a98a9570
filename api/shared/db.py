"""Shared database utilities and dependencies for FastAPI routers."""
from typing import Any, AsyncGenerator

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.shared.exceptions import DatabaseError
from di.container import ApplicationContainer
from infra.resources import DatabaseResource


@inject
async def get_db_session(
    db: DatabaseResource = Depends(
        Provide[ApplicationContainer.infrastructure.database]
    ),
) -> AsyncGenerator[AsyncSession, Any]:
    """Yield an AsyncSession per-request and ensure proper close.

    Uncommitted work is rolled back when the request fails.
    """
    try:
        session = db.get_session()
    except RuntimeError as e:
        raise DatabaseError(str(e)) from e
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()

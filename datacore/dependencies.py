# datacore/dependencies.py
"""
FastAPI dependencies for sessions, units of work and registered services.

Usage:
    app = FastAPI()
    configure_services(app, scan_services_in(ServiceCollection(), "myapp.services"))

    @app.get("/products")
    async def list_products(service: ProductService = Depends(provide(ProductService))):
        return await service.get_all()
"""
from __future__ import annotations

from functools import lru_cache
from typing import AsyncGenerator, Callable, Optional, Type, TypeVar

from fastapi import Depends, FastAPI, Request
from sqlalchemy.ext.asyncio import AsyncSession

from datacore.core.database import DatabaseManager
from datacore.core.exceptions import CoreException, ErrorCode
from datacore.core.logging import get_logger
from datacore.injection.service_collection import ServiceCollection, ServiceScope
from datacore.services.common.unit_of_work import UnitOfWork

logger = get_logger(__name__)

TService = TypeVar("TService")


@lru_cache()
def _default_database_manager() -> DatabaseManager:
    return DatabaseManager()


def configure_services(
    app: FastAPI,
    services: ServiceCollection,
    database_manager: Optional[DatabaseManager] = None,
) -> FastAPI:
    """Install the service collection (and optionally a database manager) on the app."""
    app.state.services = services
    if database_manager is not None:
        app.state.database_manager = database_manager
    logger.info(f"Configured {len(services)} service registration(s)")
    return app


# ------------------------------------------------------------------ #
# DB / UnitOfWork
# ------------------------------------------------------------------ #
def get_database_manager(request: Request) -> DatabaseManager:
    """
    Database manager stored on ``app.state``, falling back to a process-wide
    manager built from settings.
    """
    manager = getattr(request.app.state, "database_manager", None)
    return manager if manager is not None else _default_database_manager()


async def get_session(
    database_manager: DatabaseManager = Depends(get_database_manager),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield an AsyncSession, closed after the response."""
    async with database_manager.session() as session:
        yield session


async def get_unit_of_work(
    session: AsyncSession = Depends(get_session),
) -> AsyncGenerator[UnitOfWork, None]:
    """
    Yield a UnitOfWork over the request session.

    Commits when the endpoint returns normally, rolls back on error.
    """
    async with UnitOfWork.from_session(session, auto_commit=True) as uow:
        yield uow


def get_service_collection(request: Request) -> ServiceCollection:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise CoreException.format(ErrorCode.CONFIGURATION_ERROR, setting="app.state.services")
    return services


def get_service_scope(
    services: ServiceCollection = Depends(get_service_collection),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> ServiceScope:
    return services.create_scope(uow)


# ------------------------------------------------------------------ #
# Services
# ------------------------------------------------------------------ #
def provide(service_type: Type[TService]) -> Callable[..., TService]:
    """Build a dependency resolving ``service_type`` from the request's scope."""

    def _resolve(scope: ServiceScope = Depends(get_service_scope)) -> TService:
        return scope.get(service_type)

    _resolve.__name__ = f"provide_{service_type.__name__}"
    return _resolve

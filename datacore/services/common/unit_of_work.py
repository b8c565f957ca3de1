# datacore/services/common/unit_of_work.py
"""
Async unit of work over one SQLAlchemy session.

Scopes a session, its transaction and the repositories bound to it
for one service call or request.
"""
from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Any, Callable, Dict, Optional, Tuple, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from datacore.core.logging import get_logger
from datacore.repositories.base import CoreRepository

logger = get_logger(__name__)

TRepository = TypeVar("TRepository", bound=CoreRepository)


class UnitOfWork(AbstractAsyncContextManager["UnitOfWork"]):
    """
    Session scope shared by the repositories of one operation.

    Coordinates repositories over one session and ensures atomic
    commits/rollbacks.

    Usage:
        >>> async with UnitOfWork(session_factory) as uow:
        ...     products = uow.get_repository(CoreRepository, Product)
        ...     await products.add(Product(name="Desk"))
        ...     # Auto-commits on __aexit__ if no exception

    Wrapping a session owned elsewhere (never closed by the unit of work):
        >>> uow = UnitOfWork.from_session(session)
        >>> products = uow.get_repository(CoreRepository, Product)
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        *,
        auto_commit: bool = True,
    ) -> None:
        """
        Create an unentered unit of work.

        Args:
            session_factory: Factory returning a new AsyncSession
            auto_commit: Whether to commit on successful context exit
        """
        self._session_factory = session_factory
        self._auto_commit = auto_commit
        self._owns_session = True

        self.session: Optional[AsyncSession] = None
        self._committed: bool = False
        self._rolled_back: bool = False
        self._repo_cache: Dict[Tuple[type, type], CoreRepository] = {}

    @classmethod
    def from_session(cls, session: AsyncSession, *, auto_commit: bool = False) -> "UnitOfWork":
        """Bind a unit of work to an existing session without taking ownership of it."""
        uow = cls(auto_commit=auto_commit)
        uow.session = session
        uow._owns_session = False
        return uow

    # ------------------------------------------------------------------ #
    # Context manager protocol
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> "UnitOfWork":
        """Enter the context and open a session."""
        if not self._owns_session:
            return self

        if self.session is not None:
            raise RuntimeError("UnitOfWork context already entered")
        if self._session_factory is None:
            raise RuntimeError("UnitOfWork has no session factory")

        self.session = self._session_factory()
        self._committed = False
        self._rolled_back = False
        self._repo_cache.clear()

        logger.debug("Unit of work opened")
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        """Exit the context: commit on success, roll back on error."""
        if self.session is None:
            return False

        try:
            if exc_type is None:
                if self._auto_commit and not self._rolled_back:
                    await self.commit()
                    logger.debug("Unit of work committed on exit")
            elif not self._rolled_back:
                await self.session.rollback()
                self._rolled_back = True
                logger.warning(f"Unit of work rolled back after {exc_type.__name__}")
        finally:
            if self._owns_session:
                await self.session.close()
                self.session = None
                self._repo_cache.clear()
                logger.debug("Unit of work closed")

        # Propagate any exception
        return False

    def _require_session(self, operation: str) -> AsyncSession:
        if self.session is None:
            raise RuntimeError(f"UnitOfWork.{operation}() called outside of context")
        return self.session

    # ------------------------------------------------------------------ #
    # Transaction control
    # ------------------------------------------------------------------ #

    async def commit(self) -> None:
        """
        Commit the current transaction.

        Database errors roll the session back and propagate unchanged.
        """
        session = self._require_session("commit")
        try:
            await session.commit()
        except Exception as exc:
            logger.error(f"Unit of work commit failed: {exc}")
            await session.rollback()
            self._rolled_back = True
            raise
        self._committed = True

    async def rollback(self) -> None:
        """Roll back the current transaction."""
        session = self._require_session("rollback")
        await session.rollback()
        self._rolled_back = True
        self._committed = False
        logger.debug("Unit of work rolled back")

    async def flush(self) -> None:
        """
        Flush pending changes without committing.

        Assigns database-generated keys to pending entities.
        """
        await self._require_session("flush").flush()

    async def begin_transaction(self) -> AsyncSessionTransaction:
        """Begin an explicit transaction on the session."""
        return await self._require_session("begin_transaction").begin()

    # ------------------------------------------------------------------ #
    # Repository factory
    # ------------------------------------------------------------------ #

    def get_repository(self, repository_cls: Type[TRepository], model: type) -> TRepository:
        """
        Get or create a repository bound to this unit of work's session.

        Repositories are cached per (repository class, model) pair.

        Raises:
            RuntimeError: If called outside of context
        """
        session = self._require_session("get_repository")

        key = (repository_cls, model)
        if key in self._repo_cache:
            return self._repo_cache[key]  # type: ignore[return-value]

        repository = repository_cls(model, session)
        self._repo_cache[key] = repository

        logger.debug(f"Created repository: {repository_cls.__name__}[{model.__name__}]")
        return repository

    # ------------------------------------------------------------------ #
    # Utility properties
    # ------------------------------------------------------------------ #

    @property
    def is_active(self) -> bool:
        """Check if the UnitOfWork has an open session."""
        return self.session is not None

    @property
    def is_committed(self) -> bool:
        return self._committed

    @property
    def is_rolled_back(self) -> bool:
        return self._rolled_back

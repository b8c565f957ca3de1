"""
Structural interface of the core service.

Describes the data-manipulation surface every core service offers:
create/update/delete (with and without saving), existence and count
checks, lookups, raw-SQL queries, composable select statements, paging
and transactions. ``CoreService`` satisfies it; test doubles and
alternative implementations can be checked with ``isinstance``.
"""

from typing import Any, Iterable, List, Mapping, Optional, Protocol, TypeVar, Union, runtime_checkable

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSessionTransaction

from datacore.repositories.base import CoreSpecification, Criterion, Page, Paged, QueryShape

T = TypeVar("T")


@runtime_checkable
class ICoreService(Protocol[T]):
    """Data manipulation service for entities of type ``T``."""

    # Create, Update, Delete
    async def add(self, entity: Any) -> None: ...
    async def add_and_save(self, entity: Any) -> None: ...
    async def add_range(self, entities: Iterable[Any]) -> None: ...
    async def add_range_and_save(self, entities: Iterable[Any]) -> None: ...
    async def remove(self, entity: Any) -> None: ...
    async def remove_and_save(self, entity: Any) -> None: ...
    async def remove_range(self, entities: Iterable[Any]) -> None: ...
    async def remove_range_and_save(self, entities: Iterable[Any]) -> None: ...
    async def save(self) -> None: ...
    async def update(self, entity: Any) -> Any: ...
    async def update_and_save(self, entity: Any) -> Any: ...
    async def update_range(self, entities: Iterable[Any]) -> List[Any]: ...
    async def update_range_and_save(self, entities: Iterable[Any]) -> List[Any]: ...

    # Actions
    async def any_by(self, criteria: Union[Criterion, Select], *, entity: Optional[type] = None) -> bool: ...
    async def count_all(self, *, entity: Optional[type] = None) -> int: ...
    async def count_all_by(self, criteria: Criterion, *, entity: Optional[type] = None) -> int: ...
    async def find(self, id: Any, *, entity: Optional[type] = None) -> Optional[T]: ...

    # Get By
    async def get_by(self, criteria: QueryShape, *, entity: Optional[type] = None) -> Optional[T]: ...

    async def get_by_sql(
        self,
        query: str,
        parameters: Optional[Mapping[str, Any]] = None,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> Optional[T]: ...

    # Get All
    async def get_all(self, criteria: Optional[QueryShape] = None, *, entity: Optional[type] = None) -> List[T]: ...

    async def get_all_sql(
        self,
        query: str,
        parameters: Optional[Mapping[str, Any]] = None,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> List[T]: ...

    async def get_all_by_queryable(self, statement: Select) -> List[Any]: ...

    # Queryable
    def get_all_queryable(self, criteria: Optional[QueryShape] = None, *, entity: Optional[type] = None) -> Select: ...

    def get_all_queryable_sql(
        self,
        query: str,
        parameters: Optional[Mapping[str, Any]] = None,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> Select: ...

    # Pageable
    async def get_paged_result(
        self,
        page: Page,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> Paged: ...

    async def get_paged_result_sql(
        self,
        page: Page,
        query: str,
        parameters: Optional[Mapping[str, Any]] = None,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> Paged: ...

    async def page_all(self, page: Page, specification: Optional[CoreSpecification] = None) -> List[T]: ...
    def page_all_queryable(self, page: Page, specification: Optional[CoreSpecification] = None) -> Select: ...

    # Transactions
    async def begin_transaction(self) -> AsyncSessionTransaction: ...

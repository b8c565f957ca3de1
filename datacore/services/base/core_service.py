"""
Generic CRUD service forwarding every operation to a core repository.
"""

from typing import Any, ClassVar, Generic, Iterable, List, Mapping, Optional, Type, TypeVar, Union, get_args, get_origin

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSessionTransaction

from datacore.core.logging import get_logger
from datacore.repositories.base import CoreRepository, CoreSpecification, Criterion, Page, Paged, QueryShape
from datacore.services.common.unit_of_work import UnitOfWork


TRepository = TypeVar("TRepository", bound=CoreRepository)
T = TypeVar("T")


def _resolve_type(argument: Any) -> Optional[type]:
    origin = get_origin(argument) or argument
    return origin if isinstance(origin, type) else None


class CoreService(Generic[TRepository, T]):
    """
    Defines the operations for managing entities of type ``T``.

    Each instance is bound to one repository of type ``TRepository``,
    obtained from the unit of work it is constructed with. Every public
    method calls the repository method of the same name exactly once with
    the arguments it received and returns the result unchanged: there is
    no validation, retry or transformation here, and repository/ORM errors
    propagate as raised.

    The repository and entity types come from the parameterized base:

        class ProductService(CoreService[CoreRepository[Product], Product]):
            ...

    or, for classes that stay generic, from class attributes:

        class ProductService(CoreService):
            repository_class = ProductRepository
            model = Product

    Methods taking ``entity=`` operate on another mapped class through the
    same repository and session.
    """

    repository_class: ClassVar[Optional[Type[CoreRepository]]] = None
    model: ClassVar[Optional[type]] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        for base in cls.__dict__.get("__orig_bases__", ()):
            origin = get_origin(base)
            if not (isinstance(origin, type) and issubclass(origin, CoreService)):
                continue
            args = get_args(base)
            if len(args) != 2:
                continue
            repository_class, model = (_resolve_type(a) for a in args)
            if repository_class is not None and "repository_class" not in cls.__dict__:
                cls.repository_class = repository_class
            if model is not None and "model" not in cls.__dict__:
                cls.model = model

    def __init__(self, unit_of_work: UnitOfWork):
        """
        Args:
            unit_of_work: Unit of work supplying the repository instance.

        Raises:
            TypeError: If the repository or entity type cannot be resolved.
        """
        if self.repository_class is None or self.model is None:
            raise TypeError(
                f"{type(self).__name__} must parameterize CoreService[TRepository, T] "
                "or set repository_class and model"
            )
        self.unit_of_work = unit_of_work
        self._repository: TRepository = unit_of_work.get_repository(self.repository_class, self.model)
        self._logger = get_logger(self.__class__.__name__)
        self._logger.debug(
            f"Bound to {self.repository_class.__name__} for {self.model.__name__}"
        )

    @property
    def repository(self) -> TRepository:
        return self._repository

    # -------------------------------------------------------------------------
    # Create, Update, Delete
    # -------------------------------------------------------------------------

    async def add(self, entity: Any) -> None:
        """Add an entity to the repository; persisted on save()."""
        return await self._repository.add(entity)

    async def add_and_save(self, entity: Any) -> None:
        return await self._repository.add_and_save(entity)

    async def add_range(self, entities: Iterable[Any]) -> None:
        return await self._repository.add_range(entities)

    async def add_range_and_save(self, entities: Iterable[Any]) -> None:
        return await self._repository.add_range_and_save(entities)

    async def remove(self, entity: Any) -> None:
        return await self._repository.remove(entity)

    async def remove_and_save(self, entity: Any) -> None:
        return await self._repository.remove_and_save(entity)

    async def remove_range(self, entities: Iterable[Any]) -> None:
        return await self._repository.remove_range(entities)

    async def remove_range_and_save(self, entities: Iterable[Any]) -> None:
        return await self._repository.remove_range_and_save(entities)

    async def save(self) -> None:
        """Save pending changes in the repository."""
        return await self._repository.save()

    async def update(self, entity: Any) -> Any:
        return await self._repository.update(entity)

    async def update_and_save(self, entity: Any) -> Any:
        return await self._repository.update_and_save(entity)

    async def update_range(self, entities: Iterable[Any]) -> List[Any]:
        return await self._repository.update_range(entities)

    async def update_range_and_save(self, entities: Iterable[Any]) -> List[Any]:
        return await self._repository.update_range_and_save(entities)

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    async def any_by(self, criteria: Union[Criterion, Select], *, entity: Optional[type] = None) -> bool:
        """True if any entity matches the criterion or the select returns rows."""
        return await self._repository.any_by(criteria, entity=entity)

    async def count_all(self, *, entity: Optional[type] = None) -> int:
        return await self._repository.count_all(entity=entity)

    async def count_all_by(self, criteria: Criterion, *, entity: Optional[type] = None) -> int:
        return await self._repository.count_all_by(criteria, entity=entity)

    async def find(self, id: Any, *, entity: Optional[type] = None) -> Optional[Any]:
        return await self._repository.find(id, entity=entity)

    # -------------------------------------------------------------------------
    # Get By
    # -------------------------------------------------------------------------

    async def get_by(self, criteria: QueryShape, *, entity: Optional[type] = None) -> Optional[Any]:
        """First entity matching the criterion or specification, or None."""
        return await self._repository.get_by(criteria, entity=entity)

    async def get_by_sql(
        self,
        query: str,
        parameters: Optional[Mapping[str, Any]] = None,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> Optional[Any]:
        return await self._repository.get_by_sql(query, parameters, specification, entity=entity)

    # -------------------------------------------------------------------------
    # Get All
    # -------------------------------------------------------------------------

    async def get_all(self, criteria: Optional[QueryShape] = None, *, entity: Optional[type] = None) -> List[Any]:
        return await self._repository.get_all(criteria, entity=entity)

    async def get_all_sql(
        self,
        query: str,
        parameters: Optional[Mapping[str, Any]] = None,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> List[Any]:
        """Entities loaded from a raw SQL query, shaped by an optional specification."""
        return await self._repository.get_all_sql(query, parameters, specification, entity=entity)

    async def get_all_by_queryable(self, statement: Select) -> List[Any]:
        return await self._repository.get_all_by_queryable(statement)

    # -------------------------------------------------------------------------
    # Queryable
    # -------------------------------------------------------------------------

    def get_all_queryable(self, criteria: Optional[QueryShape] = None, *, entity: Optional[type] = None) -> Select:
        return self._repository.get_all_queryable(criteria, entity=entity)

    def get_all_queryable_sql(
        self,
        query: str,
        parameters: Optional[Mapping[str, Any]] = None,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> Select:
        return self._repository.get_all_queryable_sql(query, parameters, specification, entity=entity)

    # -------------------------------------------------------------------------
    # Pageable
    # -------------------------------------------------------------------------

    async def get_paged_result(
        self,
        page: Page,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> Paged:
        """One page of entities together with the total match count."""
        return await self._repository.get_paged_result(page, specification, entity=entity)

    async def get_paged_result_sql(
        self,
        page: Page,
        query: str,
        parameters: Optional[Mapping[str, Any]] = None,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> Paged:
        return await self._repository.get_paged_result_sql(page, query, parameters, specification, entity=entity)

    async def page_all(self, page: Page, specification: Optional[CoreSpecification] = None) -> List[Any]:
        return await self._repository.page_all(page, specification)

    def page_all_queryable(self, page: Page, specification: Optional[CoreSpecification] = None) -> Select:
        return self._repository.page_all_queryable(page, specification)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def begin_transaction(self) -> AsyncSessionTransaction:
        return await self._repository.begin_transaction()

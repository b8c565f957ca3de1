"""
Core repository with standardized CRUD, query, paging and raw-SQL operations.

Wraps an ``AsyncSession`` for one mapped class. Every query operation also
accepts an ``entity=`` keyword to target another mapped class through the
same session. SQLAlchemy errors propagate to callers unchanged.
"""

from typing import Any, Generic, Iterable, List, Mapping, Optional, Type, TypeVar, Union

from sqlalchemy import Select, func, select, text
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import aliased

from datacore.core.logging import get_logger
from datacore.repositories.base.pagination import Page, Paged
from datacore.repositories.base.specifications import (
    CoreSpecification,
    Criterion,
    SpecificationEvaluator,
)

logger = get_logger(__name__)

# Type variable for model classes
ModelType = TypeVar("ModelType")

QueryShape = Union[Criterion, CoreSpecification]


class CoreRepository(Generic[ModelType]):
    """
    Generic async repository over a single mapped class.

    Provides add/update/remove (with and without saving), existence and
    count checks, lookups by criteria or specification, raw-SQL sources,
    composable select statements, paging and transactions.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy mapped class
            session: Async database session
        """
        self.model = model
        self.session = session

    # ==================== Query Composition ====================

    def _target(self, entity: Optional[type]) -> Any:
        return entity if entity is not None else self.model

    def _compose(self, shape: Optional[QueryShape], target: Any, **evaluator_options: Any) -> Select:
        statement = select(target)
        if shape is None:
            return statement
        if isinstance(shape, CoreSpecification):
            return SpecificationEvaluator.get_query(statement, target, shape, **evaluator_options)
        return statement.where(SpecificationEvaluator.resolve_criterion(shape, target))

    def _from_sql(self, target: type, query: str, parameters: Optional[Mapping[str, Any]]) -> Any:
        """
        Wrap a raw SQL text as an aliased entity that further clauses compose on.

        The query must return the mapped columns of ``target``.
        """
        mapper = sa_inspect(target).mapper
        clause = text(query)
        if parameters:
            clause = clause.bindparams(**parameters)
        columns = [getattr(target, attr.key) for attr in mapper.column_attrs]
        return aliased(target, clause.columns(*columns).subquery())

    @staticmethod
    def _default_order(target: Any) -> list:
        mapper = sa_inspect(target).mapper
        return [
            getattr(target, mapper.get_property_by_column(column).key)
            for column in mapper.primary_key
        ]

    def _page_statement(
        self,
        target: Any,
        page: Page,
        specification: Optional[CoreSpecification],
    ) -> Select:
        statement = self._compose(specification, target, apply_paging=False)
        if specification is None or not specification.ordering:
            statement = statement.order_by(*self._default_order(target))
        return statement.offset(page.offset).limit(page.limit)

    async def _paged(
        self,
        target: Any,
        page: Page,
        specification: Optional[CoreSpecification],
    ) -> Paged:
        count_source = self._compose(specification, target, count_only=True)
        total = await self.session.scalar(
            select(func.count()).select_from(count_source.subquery())
        )
        items = await self.get_all_by_queryable(self._page_statement(target, page, specification))
        return Paged.create(items, total or 0, page)

    # ==================== Create Operations ====================

    async def add(self, entity: Any) -> None:
        """Stage a new entity; nothing is written until save()."""
        self.session.add(entity)
        logger.debug(f"Added {type(entity).__name__} to session")

    async def add_and_save(self, entity: Any) -> None:
        await self.add(entity)
        await self.save()

    async def add_range(self, entities: Iterable[Any]) -> None:
        entities = list(entities)
        self.session.add_all(entities)
        logger.debug(f"Added {len(entities)} entities to session")

    async def add_range_and_save(self, entities: Iterable[Any]) -> None:
        await self.add_range(entities)
        await self.save()

    # ==================== Delete Operations ====================

    async def remove(self, entity: Any) -> None:
        """Mark an entity for deletion; nothing is written until save()."""
        await self.session.delete(entity)
        logger.debug(f"Marked {type(entity).__name__} for deletion")

    async def remove_and_save(self, entity: Any) -> None:
        await self.remove(entity)
        await self.save()

    async def remove_range(self, entities: Iterable[Any]) -> None:
        count = 0
        for entity in entities:
            await self.session.delete(entity)
            count += 1
        logger.debug(f"Marked {count} entities for deletion")

    async def remove_range_and_save(self, entities: Iterable[Any]) -> None:
        await self.remove_range(entities)
        await self.save()

    # ==================== Update Operations ====================

    async def update(self, entity: Any) -> Any:
        """
        Attach an entity's state to the session.

        Detached instances are merged; the persistent instance is returned.
        """
        merged = await self.session.merge(entity)
        logger.debug(f"Merged {type(entity).__name__} into session")
        return merged

    async def update_and_save(self, entity: Any) -> Any:
        merged = await self.update(entity)
        await self.save()
        return merged

    async def update_range(self, entities: Iterable[Any]) -> List[Any]:
        merged = [await self.session.merge(entity) for entity in entities]
        logger.debug(f"Merged {len(merged)} entities into session")
        return merged

    async def update_range_and_save(self, entities: Iterable[Any]) -> List[Any]:
        merged = await self.update_range(entities)
        await self.save()
        return merged

    async def save(self) -> None:
        """Commit pending changes."""
        await self.session.commit()
        logger.debug(f"Saved changes for {self.model.__name__} repository")

    # ==================== Actions ====================

    async def any_by(self, criteria: Union[Criterion, Select], *, entity: Optional[type] = None) -> bool:
        """
        Check whether any row matches.

        Args:
            criteria: Boolean criterion, or a select statement to test for rows
            entity: Mapped class to query instead of the repository model
        """
        if isinstance(criteria, Select):
            statement = criteria
        else:
            statement = self._compose(criteria, self._target(entity))
        return bool(await self.session.scalar(select(statement.exists())))

    async def count_all(self, *, entity: Optional[type] = None) -> int:
        statement = select(func.count()).select_from(self._target(entity))
        return await self.session.scalar(statement)

    async def count_all_by(self, criteria: Criterion, *, entity: Optional[type] = None) -> int:
        source = self._compose(criteria, self._target(entity))
        return await self.session.scalar(select(func.count()).select_from(source.subquery()))

    async def find(self, id: Any, *, entity: Optional[type] = None) -> Optional[Any]:
        """Load by primary key, using the identity map first."""
        return await self.session.get(self._target(entity), id)

    # ==================== Get By ====================

    async def get_by(self, criteria: QueryShape, *, entity: Optional[type] = None) -> Optional[Any]:
        """First row matching a criterion or specification, or None."""
        statement = self._compose(criteria, self._target(entity)).limit(1)
        return (await self.session.scalars(statement)).first()

    async def get_by_sql(
        self,
        query: str,
        parameters: Optional[Mapping[str, Any]] = None,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> Optional[Any]:
        statement = self.get_all_queryable_sql(query, parameters, specification, entity=entity).limit(1)
        return (await self.session.scalars(statement)).first()

    # ==================== Get All ====================

    async def get_all(self, criteria: Optional[QueryShape] = None, *, entity: Optional[type] = None) -> List[Any]:
        """All rows matching a criterion or specification (all rows when None)."""
        return await self.get_all_by_queryable(self.get_all_queryable(criteria, entity=entity))

    async def get_all_sql(
        self,
        query: str,
        parameters: Optional[Mapping[str, Any]] = None,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> List[Any]:
        return await self.get_all_by_queryable(
            self.get_all_queryable_sql(query, parameters, specification, entity=entity)
        )

    async def get_all_by_queryable(self, statement: Select) -> List[Any]:
        """Execute a composed select and return its entities."""
        return list((await self.session.scalars(statement)).all())

    # ==================== Queryable ====================

    def get_all_queryable(self, criteria: Optional[QueryShape] = None, *, entity: Optional[type] = None) -> Select:
        """Composed, unexecuted select statement."""
        return self._compose(criteria, self._target(entity))

    def get_all_queryable_sql(
        self,
        query: str,
        parameters: Optional[Mapping[str, Any]] = None,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> Select:
        source = self._from_sql(self._target(entity), query, parameters)
        return self._compose(specification, source)

    # ==================== Pageable ====================

    async def get_paged_result(
        self,
        page: Page,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> Paged:
        """
        Load one page plus the total count of the filtered query.

        The page overrides any skip/take set on the specification. Without
        explicit ordering rows are ordered by primary key.
        """
        return await self._paged(self._target(entity), page, specification)

    async def get_paged_result_sql(
        self,
        page: Page,
        query: str,
        parameters: Optional[Mapping[str, Any]] = None,
        specification: Optional[CoreSpecification] = None,
        *,
        entity: Optional[type] = None,
    ) -> Paged:
        source = self._from_sql(self._target(entity), query, parameters)
        return await self._paged(source, page, specification)

    async def page_all(self, page: Page, specification: Optional[CoreSpecification] = None) -> List[Any]:
        return await self.get_all_by_queryable(self.page_all_queryable(page, specification))

    def page_all_queryable(self, page: Page, specification: Optional[CoreSpecification] = None) -> Select:
        return self._page_statement(self.model, page, specification)

    # ==================== Transactions ====================

    async def begin_transaction(self) -> AsyncSessionTransaction:
        """
        Begin an explicit transaction on the session.

        Raises ``InvalidRequestError`` if the session already has one in progress.
        """
        transaction = await self.session.begin()
        logger.debug("Transaction started")
        return transaction

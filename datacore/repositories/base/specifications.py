"""
Specification pattern for encapsulating query logic.

Two layers are provided:

- ``Specification``: a composable predicate that renders itself against a
  query target (a mapped class or an ``aliased()`` entity).
- ``CoreSpecification``: the query-shape descriptor handed to repositories,
  bundling criteria, eager-load includes, ordering and optional paging.

``SpecificationEvaluator`` applies a ``CoreSpecification`` to a ``Select``.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar, Union

from sqlalchemy import Select, and_, or_, not_, func, true
from sqlalchemy.orm import selectinload
from sqlalchemy.sql.expression import ClauseElement, ColumnElement

ModelType = TypeVar("ModelType")


class Specification(ABC, Generic[ModelType]):
    """
    Reusable predicate over a query target.

    Specifications combine with ``&``, ``|`` and ``~`` and render only when
    a target is supplied, so the same instance filters the mapped class and
    raw-SQL aliases of it.
    """

    @abstractmethod
    def to_expression(self, target: Any) -> ColumnElement[bool]:
        """Render the predicate against ``target``."""

    def __and__(self, other: "Specification[ModelType]") -> "Specification[ModelType]":
        return AndSpecification(self, other)

    def __or__(self, other: "Specification[ModelType]") -> "Specification[ModelType]":
        return OrSpecification(self, other)

    def __invert__(self) -> "Specification[ModelType]":
        return NotSpecification(self)


class _CompositeSpecification(Specification[ModelType]):
    combinator: Callable[..., ColumnElement[bool]]

    def __init__(self, *specs: Specification[ModelType]):
        self.specs: Tuple[Specification[ModelType], ...] = specs

    def to_expression(self, target: Any) -> ColumnElement[bool]:
        return type(self).combinator(*(spec.to_expression(target) for spec in self.specs))


class AndSpecification(_CompositeSpecification[ModelType]):
    combinator = and_


class OrSpecification(_CompositeSpecification[ModelType]):
    combinator = or_


class NotSpecification(Specification[ModelType]):
    def __init__(self, spec: Specification[ModelType]):
        self.spec = spec

    def to_expression(self, target: Any) -> ColumnElement[bool]:
        return not_(self.spec.to_expression(target))


# ==================== Field Specifications ====================


class FieldSpecification(Specification[ModelType]):
    """Predicate on a single attribute, looked up by name on the target."""

    def __init__(self, field_name: str):
        self.field_name = field_name

    def to_expression(self, target: Any) -> ColumnElement[bool]:
        return self.compare(getattr(target, self.field_name))

    @abstractmethod
    def compare(self, field: Any) -> ColumnElement[bool]:
        ...


class FieldEqualsSpecification(FieldSpecification[ModelType]):
    """``field = value``; ``None`` renders as ``IS NULL``."""

    def __init__(self, field_name: str, value: Any):
        super().__init__(field_name)
        self.value = value

    def compare(self, field: Any) -> ColumnElement[bool]:
        return field.is_(None) if self.value is None else field == self.value


class FieldInSpecification(FieldSpecification[ModelType]):
    def __init__(self, field_name: str, values: Sequence[Any]):
        super().__init__(field_name)
        self.values = list(values)

    def compare(self, field: Any) -> ColumnElement[bool]:
        return field.in_(self.values)


class FieldBetweenSpecification(FieldSpecification[ModelType]):
    """Inclusive range on both ends."""

    def __init__(self, field_name: str, lower: Any, upper: Any):
        super().__init__(field_name)
        self.lower = lower
        self.upper = upper

    def compare(self, field: Any) -> ColumnElement[bool]:
        return field.between(self.lower, self.upper)


class FieldLikeSpecification(FieldSpecification[ModelType]):
    """SQL ``LIKE`` match, case-insensitive unless asked otherwise."""

    def __init__(self, field_name: str, pattern: str, case_sensitive: bool = False):
        super().__init__(field_name)
        self.pattern = pattern
        self.case_sensitive = case_sensitive

    def compare(self, field: Any) -> ColumnElement[bool]:
        match = field.like if self.case_sensitive else field.ilike
        return match(self.pattern)


class DateRangeSpecification(FieldSpecification[ModelType]):
    """
    Calendar-date window on a date or datetime column.

    Either bound may be omitted; with neither the predicate is always true.
    """

    def __init__(self, field_name: str, since: Optional[date] = None, until: Optional[date] = None):
        super().__init__(field_name)
        self.since = since
        self.until = until

    def compare(self, field: Any) -> ColumnElement[bool]:
        day = func.date(field)
        bounds = []
        if self.since is not None:
            bounds.append(day >= self.since)
        if self.until is not None:
            bounds.append(day <= self.until)
        return and_(*bounds) if bounds else true()


# ==================== Query Shape ====================


Criterion = Union[ColumnElement[bool], Specification, Callable[[Any], ColumnElement[bool]]]
OrderKey = Union[str, ColumnElement[Any], Callable[[Any], ColumnElement[Any]]]


class CoreSpecification(Generic[ModelType]):
    """
    Query-shape descriptor passed opaquely to repositories.

    Criteria are AND-ed together. Entity-relative criteria (``Specification``
    instances or callables taking the query target) also work against raw
    SQL sources, where the target is an aliased entity; bound column
    expressions such as ``Product.price > 10`` only apply to the mapped
    class itself.

    Usage:
        spec = (
            CoreSpecification(FieldEqualsSpecification("active", True))
            .include("category")
            .order_by_desc("created_at")
            .paginate(skip=0, take=20)
        )
    """

    def __init__(self, *criteria: Criterion):
        self.criteria: List[Criterion] = list(criteria)
        self.includes: List[str] = []
        self.ordering: List[Tuple[OrderKey, bool]] = []
        self.skip: Optional[int] = None
        self.take: Optional[int] = None
        self.is_distinct: bool = False

    @property
    def is_paging_enabled(self) -> bool:
        return self.skip is not None or self.take is not None

    def where(self, criterion: Criterion) -> "CoreSpecification[ModelType]":
        self.criteria.append(criterion)
        return self

    def include(self, path: str) -> "CoreSpecification[ModelType]":
        """Eager-load a relationship; nested paths use dots (``"orders.lines"``)."""
        self.includes.append(path)
        return self

    def order_by_asc(self, key: OrderKey) -> "CoreSpecification[ModelType]":
        self.ordering.append((key, False))
        return self

    def order_by_desc(self, key: OrderKey) -> "CoreSpecification[ModelType]":
        self.ordering.append((key, True))
        return self

    def paginate(self, skip: int, take: int) -> "CoreSpecification[ModelType]":
        if skip < 0 or take < 1:
            raise ValueError("skip must be >= 0 and take must be >= 1")
        self.skip = skip
        self.take = take
        return self

    def distinct(self) -> "CoreSpecification[ModelType]":
        self.is_distinct = True
        return self

    def __repr__(self) -> str:
        return (
            f"CoreSpecification(criteria={len(self.criteria)}, includes={self.includes}, "
            f"ordering={len(self.ordering)}, skip={self.skip}, take={self.take})"
        )


class SpecificationEvaluator:
    """Renders criteria and ``CoreSpecification`` objects onto ``Select`` statements."""

    @staticmethod
    def resolve_criterion(criterion: Criterion, target: Any) -> ColumnElement[bool]:
        if isinstance(criterion, Specification):
            return criterion.to_expression(target)
        if isinstance(criterion, ClauseElement) or hasattr(criterion, "__clause_element__"):
            return criterion
        if callable(criterion):
            return criterion(target)
        raise TypeError(f"Unsupported criterion type: {type(criterion).__name__}")

    @staticmethod
    def resolve_order(key: OrderKey, target: Any) -> ColumnElement[Any]:
        if isinstance(key, str):
            return getattr(target, key)
        if isinstance(key, ClauseElement) or hasattr(key, "__clause_element__"):
            return key
        if callable(key):
            return key(target)
        raise TypeError(f"Unsupported order key type: {type(key).__name__}")

    @staticmethod
    def build_loader(target: Any, path: str) -> Any:
        """Build a chained ``selectinload`` option for a dotted relationship path."""
        loader = None
        current = target
        for part in path.split("."):
            attribute = getattr(current, part)
            loader = selectinload(attribute) if loader is None else loader.selectinload(attribute)
            current = attribute.property.mapper.class_
        return loader

    @classmethod
    def get_query(
        cls,
        statement: Select,
        target: Any,
        specification: Optional[CoreSpecification] = None,
        *,
        apply_paging: bool = True,
        count_only: bool = False,
    ) -> Select:
        """
        Apply a specification to a select statement.

        Args:
            statement: Base select over ``target``
            target: Mapped class or aliased entity
            specification: Query shape; ``None`` leaves the statement untouched
            apply_paging: Whether the specification's skip/take are applied
            count_only: Apply criteria and distinct only, for counting rows

        Returns:
            Composed select statement
        """
        if specification is None:
            return statement

        if specification.criteria:
            statement = statement.where(
                and_(*[cls.resolve_criterion(c, target) for c in specification.criteria])
            )

        if count_only:
            return statement.distinct() if specification.is_distinct else statement

        for path in specification.includes:
            statement = statement.options(cls.build_loader(target, path))

        for key, descending in specification.ordering:
            column = cls.resolve_order(key, target)
            statement = statement.order_by(column.desc() if descending else column.asc())

        if specification.is_distinct:
            statement = statement.distinct()

        if apply_paging and specification.is_paging_enabled:
            if specification.skip:
                statement = statement.offset(specification.skip)
            if specification.take is not None:
                statement = statement.limit(specification.take)

        return statement

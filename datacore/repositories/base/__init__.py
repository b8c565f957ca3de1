"""
Base repository components: the generic repository, specifications
and pagination models.
"""

from datacore.repositories.base.core_repository import CoreRepository, ModelType, QueryShape
from datacore.repositories.base.pagination import Page, Paged
from datacore.repositories.base.specifications import (
    Specification,
    AndSpecification,
    OrSpecification,
    NotSpecification,
    FieldSpecification,
    FieldEqualsSpecification,
    FieldInSpecification,
    FieldBetweenSpecification,
    FieldLikeSpecification,
    DateRangeSpecification,
    CoreSpecification,
    SpecificationEvaluator,
    Criterion,
    OrderKey,
)

__all__ = [
    "CoreRepository",
    "ModelType",
    "QueryShape",
    "Page",
    "Paged",
    "Specification",
    "AndSpecification",
    "OrSpecification",
    "NotSpecification",
    "FieldSpecification",
    "FieldEqualsSpecification",
    "FieldInSpecification",
    "FieldBetweenSpecification",
    "FieldLikeSpecification",
    "DateRangeSpecification",
    "CoreSpecification",
    "SpecificationEvaluator",
    "Criterion",
    "OrderKey",
]

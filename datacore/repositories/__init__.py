from datacore.repositories.base import CoreRepository, CoreSpecification, Page, Paged

__all__ = ["CoreRepository", "CoreSpecification", "Page", "Paged"]

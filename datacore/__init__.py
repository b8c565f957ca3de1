"""
datacore: generic async data-access and service layer on SQLAlchemy.

- ``CoreRepository``: CRUD, query, raw-SQL and paging operations
- ``CoreService``: pass-through service bound to a repository
- ``UnitOfWork``: session and transaction scope
- ``service`` / ``service_interface`` and the scanners in ``datacore.injection``

FastAPI wiring lives in ``datacore.dependencies``.
"""

from datacore.core import CoreException, ErrorCode, get_logger, get_settings
from datacore.injection import (
    ServiceCollection,
    add_services,
    add_services_from_package,
    scan_services_in,
    service,
    service_interface,
)
from datacore.repositories import CoreRepository, CoreSpecification, Page, Paged
from datacore.services import CoreService, ICoreService, UnitOfWork

__version__ = "1.0.0"

__all__ = [
    "CoreException",
    "ErrorCode",
    "get_logger",
    "get_settings",
    "CoreRepository",
    "CoreSpecification",
    "Page",
    "Paged",
    "CoreService",
    "ICoreService",
    "UnitOfWork",
    "ServiceCollection",
    "service",
    "service_interface",
    "add_services",
    "add_services_from_package",
    "scan_services_in",
]

"""
Registry of injectable services and per-request resolution scopes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar

from datacore.core.exceptions import ServiceNotRegisteredError
from datacore.core.logging import get_logger
from datacore.services.common.unit_of_work import UnitOfWork

logger = get_logger(__name__)

TService = TypeVar("TService")


class ServiceLifetime(str, Enum):
    """How long a resolved service instance lives."""

    SCOPED = "scoped"


@dataclass(frozen=True)
class ServiceDescriptor:
    service_type: type
    implementation_type: type
    lifetime: ServiceLifetime = ServiceLifetime.SCOPED


class ServiceCollection:
    """
    Ordered collection of service registrations.

    Each registration maps a service type (an interface or the class
    itself) to the implementation constructed for it. Services are built
    with the unit of work of the scope resolving them.
    """

    def __init__(self) -> None:
        self._descriptors: List[ServiceDescriptor] = []

    def add_scoped(
        self,
        service_type: type,
        implementation_type: Optional[type] = None,
    ) -> "ServiceCollection":
        """
        Register a scoped service.

        Args:
            service_type: Type the service is resolved by
            implementation_type: Class to instantiate; defaults to ``service_type``
        """
        descriptor = ServiceDescriptor(
            service_type=service_type,
            implementation_type=implementation_type or service_type,
        )
        self._descriptors.append(descriptor)
        logger.debug(
            f"Registered {descriptor.implementation_type.__name__} "
            f"as {descriptor.service_type.__name__}"
        )
        return self

    def contains(self, service_type: type) -> bool:
        return self.get_descriptor(service_type) is not None

    def get_descriptor(self, service_type: type) -> Optional[ServiceDescriptor]:
        """Latest registration for ``service_type``, or None."""
        for descriptor in reversed(self._descriptors):
            if descriptor.service_type is service_type:
                return descriptor
        return None

    def create_scope(self, unit_of_work: UnitOfWork) -> "ServiceScope":
        return ServiceScope(self, unit_of_work)

    def __iter__(self) -> Iterator[ServiceDescriptor]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __repr__(self) -> str:
        return f"ServiceCollection(services={len(self._descriptors)})"


class ServiceScope:
    """Resolves services for one unit of work, caching instances for its lifetime."""

    def __init__(self, services: ServiceCollection, unit_of_work: UnitOfWork):
        self.services = services
        self.unit_of_work = unit_of_work
        self._instances: Dict[type, Any] = {}

    def get(self, service_type: Type[TService]) -> TService:
        """
        Resolve a service.

        Raises:
            ServiceNotRegisteredError: If ``service_type`` was never registered
        """
        if service_type in self._instances:
            return self._instances[service_type]

        descriptor = self.services.get_descriptor(service_type)
        if descriptor is None:
            raise ServiceNotRegisteredError(service_type)

        instance = descriptor.implementation_type(self.unit_of_work)
        self._instances[service_type] = instance
        return instance

"""
Dependency injection: service markers, the service collection and scanners.
"""

from datacore.injection.attributes import (
    is_service,
    is_service_interface,
    service,
    service_interface,
    service_interfaces,
)
from datacore.injection.service_collection import (
    ServiceCollection,
    ServiceDescriptor,
    ServiceLifetime,
    ServiceScope,
)
from datacore.injection.service_injections import (
    add_services,
    add_services_from_package,
    scan_services_in,
)

__all__ = [
    "service",
    "service_interface",
    "is_service",
    "is_service_interface",
    "service_interfaces",
    "ServiceCollection",
    "ServiceDescriptor",
    "ServiceLifetime",
    "ServiceScope",
    "add_services",
    "add_services_from_package",
    "scan_services_in",
]

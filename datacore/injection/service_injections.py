"""
Service registration by scanning loaded modules for ``@service`` classes.

Usage:
    services = ServiceCollection()
    scan_services_in(services, "myapp.services")
"""

import importlib
import inspect
import pkgutil
import sys
import warnings
from types import ModuleType
from typing import Iterable, Iterator, List, Union

from datacore.core.constants import LEGACY_SERVICE_MODULE, LEGACY_SERVICE_SUFFIX
from datacore.core.exceptions import CoreException, ErrorCode
from datacore.core.logging import get_logger
from datacore.injection.attributes import is_service, service_interfaces
from datacore.injection.service_collection import ServiceCollection

logger = get_logger(__name__)


# ==================== Discovery ====================


def _nested_classes(cls: type) -> Iterator[type]:
    # Matching qualname skips aliases and back-references to outer classes
    for value in list(vars(cls).values()):
        if isinstance(value, type) and value.__qualname__ == f"{cls.__qualname__}.{value.__name__}":
            yield value
            yield from _nested_classes(value)


def _classes_defined_in(module: ModuleType) -> List[type]:
    """Classes defined in ``module``, including classes nested in them."""
    namespace = getattr(module, "__dict__", None)
    module_name = getattr(module, "__name__", None)
    if not namespace or module_name is None:
        return []
    classes: List[type] = []
    for value in list(namespace.values()):
        if isinstance(value, type) and value.__module__ == module_name:
            classes.append(value)
            classes.extend(_nested_classes(value))
    return classes


def _marked_classes(modules: Iterable[ModuleType]) -> List[type]:
    found: List[type] = []
    seen = set()
    for module in modules:
        for cls in _classes_defined_in(module):
            if cls not in seen and is_service(cls):
                seen.add(cls)
                found.append(cls)
    return found


def _walk_package(module: ModuleType) -> List[ModuleType]:
    """The module itself plus, for a package, every submodule (imported)."""
    modules = [module]
    search_path = getattr(module, "__path__", None)
    if search_path is None:
        return modules
    for info in pkgutil.walk_packages(search_path, prefix=f"{module.__name__}."):
        modules.append(importlib.import_module(info.name))
    return modules


def _register(services: ServiceCollection, implementations: List[type]) -> ServiceCollection:
    if not implementations:
        raise CoreException.format(ErrorCode.NO_SERVICE)

    for implementation in implementations:
        interfaces = service_interfaces(implementation)
        if not interfaces:
            services.add_scoped(implementation)
            continue
        for interface in interfaces:
            services.add_scoped(interface, implementation)

    logger.info(f"Registered {len(implementations)} service implementation(s)")
    return services


# ==================== Public API ====================


def add_services(services: ServiceCollection) -> ServiceCollection:
    """
    Register every ``@service`` class defined in any loaded module.

    A class is registered once per ``@service_interface`` among its bases,
    or as itself when it has none. All services are scoped.

    Raises:
        CoreException: ``NO_SERVICE`` when no marked class is loaded
    """
    modules = [module for module in list(sys.modules.values()) if module is not None]
    return _register(services, _marked_classes(modules))


def scan_services_in(
    services: ServiceCollection,
    module_or_name: Union[ModuleType, str],
) -> ServiceCollection:
    """
    Register the ``@service`` classes of one module or package.

    Args:
        services: Collection to register into
        module_or_name: Module object or importable dotted name; packages
            are walked recursively

    Raises:
        CoreException: ``NO_SERVICE`` when no marked class is found
        ModuleNotFoundError: If the name cannot be imported
    """
    if isinstance(module_or_name, str):
        module = importlib.import_module(module_or_name)
    else:
        module = module_or_name

    logger.debug(f"Scanning {module.__name__} for services")
    return _register(services, _marked_classes(_walk_package(module)))


def add_services_from_package(services: ServiceCollection, package_name: str) -> ServiceCollection:
    """
    Register concrete ``*Service`` classes from ``<package_name>.service``.

    Deprecated: mark classes with ``@service`` and use ``add_services`` or
    ``scan_services_in`` instead.
    """
    warnings.warn(
        "add_services_from_package is deprecated, use add_services or "
        "scan_services_in with @service instead",
        DeprecationWarning,
        stacklevel=2,
    )
    module = importlib.import_module(f"{package_name}.{LEGACY_SERVICE_MODULE}")
    implementations = [
        cls
        for cls in _classes_defined_in(module)
        if cls.__name__.endswith(LEGACY_SERVICE_SUFFIX) and not inspect.isabstract(cls)
    ]
    for implementation in implementations:
        services.add_scoped(implementation)
    logger.debug(f"Registered {len(implementations)} legacy service(s) from {package_name}")
    return services

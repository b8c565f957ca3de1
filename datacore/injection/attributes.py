"""
Class markers discovered by the service scanner.

``@service`` flags a class for registration; subclasses inherit the flag.
``@service_interface`` flags an interface a service is registered under;
the flag lives on the interface itself and is not inherited by classes
implementing it.
"""

from typing import List, Type, TypeVar

from datacore.core.constants import SERVICE_INTERFACE_MARKER, SERVICE_MARKER

C = TypeVar("C", bound=type)


def _require_class(target: object, decorator: str) -> None:
    if not isinstance(target, type):
        raise TypeError(f"@{decorator} can only decorate classes, got {type(target).__name__}")


def service(cls: C) -> C:
    """
    Mark a class for registration by the service scanner.

    Usage:
        @service
        class ProductService(CoreService[CoreRepository[Product], Product]):
            pass
    """
    _require_class(cls, "service")
    setattr(cls, SERVICE_MARKER, True)
    return cls


def service_interface(cls: C) -> C:
    """Mark an interface that implementing services are registered under."""
    _require_class(cls, "service_interface")
    setattr(cls, SERVICE_INTERFACE_MARKER, True)
    return cls


def is_service(cls: type) -> bool:
    return isinstance(cls, type) and bool(getattr(cls, SERVICE_MARKER, False))


def is_service_interface(cls: type) -> bool:
    # Only the class that was decorated, never its subclasses
    return isinstance(cls, type) and bool(cls.__dict__.get(SERVICE_INTERFACE_MARKER, False))


def service_interfaces(cls: Type) -> List[type]:
    """Marked interfaces among the bases of ``cls``, nearest first."""
    return [base for base in cls.__mro__[1:] if is_service_interface(base)]

# datacore/core/constants.py
from __future__ import annotations

"""
Core library constants.

These values centralize common configuration-like constants such as:
- Pagination defaults.
- Marker attribute names used by the service scanner.
"""

# Pagination defaults
DEFAULT_PAGE: int = 1
DEFAULT_PAGE_SIZE: int = 20
MAX_PAGE_SIZE: int = 100

# Marker attributes set by the injection decorators
SERVICE_MARKER: str = "__datacore_service__"
SERVICE_INTERFACE_MARKER: str = "__datacore_service_interface__"

# Module scanned by the legacy package-based registration
LEGACY_SERVICE_MODULE: str = "service"
LEGACY_SERVICE_SUFFIX: str = "Service"

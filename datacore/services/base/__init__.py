"""
Base service components.

- ``CoreService``: generic pass-through CRUD/query service
- ``ICoreService``: its structural interface
"""

from datacore.services.base.core_service import CoreService
from datacore.services.base.interfaces import ICoreService

__all__ = ["CoreService", "ICoreService"]

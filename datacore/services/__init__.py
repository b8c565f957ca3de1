from datacore.services.base import CoreService, ICoreService
from datacore.services.common import UnitOfWork

__all__ = ["CoreService", "ICoreService", "UnitOfWork"]

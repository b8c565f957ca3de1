from datacore.repositories.base import CoreRepository
from datacore.services.base import CoreService
from tests.models import Product


class ShippingService(CoreService[CoreRepository[Product], Product]):
    pass


class Clock:
    pass

from datacore.injection import service
from datacore.repositories.base import CoreRepository
from datacore.services.base import CoreService
from tests.models import Category


class Catalog:
    @service
    class ArchiveService(CoreService[CoreRepository[Category], Category]):
        class Options:
            pass

    Alias = ArchiveService

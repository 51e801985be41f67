from dataclasses import dataclass

from ..application.services.auth_service import AuthService
from ..application.services.catalog_service import CatalogService
from ..application.services.interaction_service import InteractionService
from ..application.services.user_service import UserService
from ..domain.ports.persistence import PersistenceGateway
from ..domain.ports.storage import BlobStorage
from ..services.image_processor import ImageProcessor
from .config import Settings


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    persistence: PersistenceGateway
    blob_storage: BlobStorage
    image_processor: ImageProcessor
    auth_service: AuthService
    catalog_service: CatalogService
    interaction_service: InteractionService
    user_service: UserService

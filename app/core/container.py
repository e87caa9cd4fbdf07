import logging

from app.core.config import Config
from app.services.background import BackgroundDispatcher
from app.services.cache_service import CacheService, create_cache_service
from app.services.events import EventPublisher
from app.services.notifications import ConnectionRegistry
from app.services.storage_service import FileSystemStorageService, create_storage_service
from app.utils.email_service import EmailService, create_email_service

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Process-wide collaborators, owned by the application lifespan."""

    def __init__(
        self,
        cache: CacheService,
        storage: FileSystemStorageService,
        events: EventPublisher,
        mail: EmailService,
        dispatcher: BackgroundDispatcher,
        admin_email: str = "",
    ):
        self.cache = cache
        self.storage = storage
        self.events = events
        self.mail = mail
        self.dispatcher = dispatcher
        self.admin_email = admin_email
        self.funko_notifier = ConnectionRegistry("funkos")
        self.categoria_notifier = ConnectionRegistry("categorias")

    @classmethod
    def from_config(cls) -> "ServiceContainer":
        return cls(
            cache=create_cache_service(),
            storage=create_storage_service(),
            events=EventPublisher(),
            mail=create_email_service(),
            dispatcher=BackgroundDispatcher(
                workers=Config.BACKGROUND_WORKERS,
                max_queue_size=Config.BACKGROUND_QUEUE_SIZE,
                drain_timeout=Config.BACKGROUND_DRAIN_TIMEOUT,
            ),
            admin_email=Config.ADMIN_EMAIL,
        )

    async def start(self) -> None:
        await self.dispatcher.start()
        await self.mail.start()
        logger.info("Service container started")

    async def stop(self) -> None:
        await self.dispatcher.stop(drain=True)
        await self.mail.stop()
        await self.funko_notifier.close_all()
        await self.categoria_notifier.close_all()
        await self.cache.close()
        logger.info("Service container stopped")

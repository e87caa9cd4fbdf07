import logging
from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError

from app.core.errors import ErrorType
from app.models.funkos import Funko, IMAGE_DEFAULT
from app.repositories.categories import CategoriaRepository
from app.repositories.funkos import FunkoRepository
from app.schemas.funkos import FunkoRequest, FunkoResponse
from app.services.background import BackgroundDispatcher
from app.services.cache_service import CacheService
from app.services.events import (
    EventPublisher,
    FunkoActualizadoEvent,
    FunkoCreadoEvent,
    FunkoEliminadoEvent,
    ON_FUNKO_ACTUALIZADO,
    ON_FUNKO_CREADO,
    ON_FUNKO_ELIMINADO,
)
from app.services.notifications import CREATED, DELETED, UPDATED, ConnectionRegistry, funko_notification
from app.services.result import ServiceResult
from app.services.storage_service import FileSystemStorageService, StorageError
from app.utils.email_service import EmailService, funko_created_email, funko_updated_email

logger = logging.getLogger(__name__)

CACHE_PREFIX = "Funko_"
CACHE_TTL_SECONDS = 30 * 60


def cache_key(funko_id: int) -> str:
    return f"{CACHE_PREFIX}{funko_id}"


class FunkoService:
    """
    Funko use cases.

    Reads go through the cache first. Writes validate the category, store
    the optional image, persist, make the cache coherent, and then hand the
    WebSocket notification, the subscription event and the admin email to
    the background dispatcher.
    """

    def __init__(
        self,
        repository: FunkoRepository,
        category_repository: CategoriaRepository,
        cache: CacheService,
        storage: FileSystemStorageService,
        notifier: ConnectionRegistry,
        publisher: EventPublisher,
        mail: EmailService,
        dispatcher: BackgroundDispatcher,
        admin_email: str = "",
    ):
        self.repository = repository
        self.category_repository = category_repository
        self.cache = cache
        self.storage = storage
        self.notifier = notifier
        self.publisher = publisher
        self.mail = mail
        self.dispatcher = dispatcher
        self.admin_email = admin_email

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[FunkoResponse]:
        return [FunkoResponse.from_model(funko) for funko in self.repository.find_all(skip, limit)]

    async def get_by_id(self, funko_id: int) -> ServiceResult:
        key = cache_key(funko_id)
        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return ServiceResult.ok(FunkoResponse.model_validate(cached))

        funko = self.repository.find_by_id(funko_id)
        if funko is None:
            logger.warning(f"Funko not found with id {funko_id}")
            return ServiceResult.fail(ErrorType.NOT_FOUND, f"Funko with id {funko_id} not found")

        response = FunkoResponse.from_model(funko)
        await self.cache.set(key, response.model_dump(mode="json"), CACHE_TTL_SECONDS)
        return ServiceResult.ok(response)

    async def create(self, request: FunkoRequest, file: Optional[UploadFile] = None) -> ServiceResult:
        categoria = self.category_repository.find_by_name(request.category)
        if categoria is None:
            logger.warning(f"Funko rejected, category '{request.category}' does not exist")
            return ServiceResult.fail(ErrorType.VALIDATION, f"Category '{request.category}' does not exist")

        image = await self._save_image(file)
        if not image.is_success:
            return image

        funko = Funko(
            name=request.name,
            price=request.price,
            category_id=categoria.id,
            image=image.value or IMAGE_DEFAULT,
        )
        try:
            funko = self.repository.add(funko)
        except IntegrityError as e:
            logger.error(f"Funko could not be saved: {str(e.orig)}")
            return ServiceResult.fail(ErrorType.CONFLICT, "Funko could not be saved")

        response = FunkoResponse.from_model(funko)
        await self.cache.set(cache_key(funko.id), response.model_dump(mode="json"), CACHE_TTL_SECONDS)
        logger.info(f"Funko created with id {funko.id}")

        self._notify(CREATED, response)
        self._publish(ON_FUNKO_CREADO, FunkoCreadoEvent(
            funko_id=response.id, name=response.name, price=response.price,
        ))
        self._send_email(funko_created_email, response)
        return ServiceResult.ok(response)

    async def update(self, funko_id: int, request: FunkoRequest, file: Optional[UploadFile] = None) -> ServiceResult:
        funko = self.repository.find_by_id(funko_id)
        if funko is None:
            logger.warning(f"Funko not found with id {funko_id}")
            return ServiceResult.fail(ErrorType.NOT_FOUND, f"Funko with id {funko_id} not found")

        categoria = self.category_repository.find_by_name(request.category)
        if categoria is None:
            logger.warning(f"Funko update rejected, category '{request.category}' does not exist")
            return ServiceResult.fail(ErrorType.VALIDATION, f"Category '{request.category}' does not exist")

        image = await self._save_image(file)
        if not image.is_success:
            return image

        funko.name = request.name
        funko.price = request.price
        funko.category_id = categoria.id
        funko.category = categoria
        if image.value:
            funko.image = image.value

        try:
            funko = self.repository.update(funko)
        except IntegrityError as e:
            logger.error(f"Funko {funko_id} could not be updated: {str(e.orig)}")
            return ServiceResult.fail(ErrorType.CONFLICT, f"Funko with id {funko_id} could not be updated")

        await self.cache.remove(cache_key(funko_id))
        response = FunkoResponse.from_model(funko)
        logger.info(f"Funko {funko_id} updated")

        self._notify(UPDATED, response)
        self._publish(ON_FUNKO_ACTUALIZADO, FunkoActualizadoEvent(
            funko_id=response.id, name=response.name, price=response.price,
        ))
        self._send_email(funko_updated_email, response)
        return ServiceResult.ok(response)

    async def delete(self, funko_id: int) -> ServiceResult:
        funko = self.repository.find_by_id(funko_id)
        if funko is None:
            logger.warning(f"Funko not found with id {funko_id}")
            return ServiceResult.fail(ErrorType.NOT_FOUND, f"Funko with id {funko_id} not found")

        response = FunkoResponse.from_model(funko)
        self.repository.delete(funko)
        await self.cache.remove(cache_key(funko_id))
        logger.info(f"Funko {funko_id} deleted")

        self._notify(DELETED, response)
        self._publish(ON_FUNKO_ELIMINADO, FunkoEliminadoEvent(funko_id=funko_id))
        return ServiceResult.ok(response)

    async def _save_image(self, file: Optional[UploadFile]) -> ServiceResult:
        if file is None or not file.filename:
            return ServiceResult.ok("")
        try:
            return ServiceResult.ok(await self.storage.save_file(file))
        except StorageError as e:
            logger.warning(f"Funko image rejected: {str(e)}")
            return ServiceResult.fail(ErrorType.STORAGE, str(e))

    def _notify(self, event_type: str, response: FunkoResponse):
        notification = funko_notification(event_type, response.id, response.model_dump(mode="json"))
        self.dispatcher.submit(
            f"ws-funko-{event_type.lower()}-{response.id}",
            lambda: self.notifier.broadcast(notification),
        )

    def _publish(self, topic: str, event):
        self.dispatcher.submit(f"event-{topic}", lambda: self.publisher.publish(topic, event))

    def _send_email(self, template, response: FunkoResponse):
        if not self.admin_email:
            logger.debug("ADMIN_EMAIL not configured, product email skipped")
            return
        message = template(self.admin_email, response.name, response.price, response.category, response.id)
        self.dispatcher.submit(f"email-funko-{response.id}", lambda: self.mail.enqueue_email(message))

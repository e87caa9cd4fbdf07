import logging
import uuid
from typing import List

from sqlalchemy.exc import IntegrityError

from app.core.errors import ErrorType
from app.models.categories import Categoria
from app.repositories.categories import CategoriaRepository
from app.schemas.categories import CategoriaRequest, CategoriaResponse
from app.services.background import BackgroundDispatcher
from app.services.cache_service import CacheService
from app.services.funko_service import CACHE_PREFIX as FUNKO_CACHE_PREFIX
from app.services.notifications import CREATED, DELETED, UPDATED, ConnectionRegistry, categoria_notification
from app.services.result import ServiceResult

logger = logging.getLogger(__name__)

CACHE_PREFIX = "Categoria_"


def cache_key(name: str) -> str:
    return f"{CACHE_PREFIX}{name.strip().lower()}"


class CategoriaService:
    """
    Category use cases.

    Name lookups are cached with the cache's default TTL. Renames and
    deletes also evict every cached funko, which embed the category name.
    Writes only notify WebSocket clients.
    """

    def __init__(
        self,
        repository: CategoriaRepository,
        cache: CacheService,
        notifier: ConnectionRegistry,
        dispatcher: BackgroundDispatcher,
    ):
        self.repository = repository
        self.cache = cache
        self.notifier = notifier
        self.dispatcher = dispatcher

    async def get_all(self) -> List[CategoriaResponse]:
        return [CategoriaResponse.model_validate(categoria) for categoria in self.repository.find_all()]

    async def get_by_name(self, name: str) -> ServiceResult:
        key = cache_key(name)
        cached = await self.cache.get(key)
        if cached is not None:
            return ServiceResult.ok(CategoriaResponse.model_validate(cached))

        categoria = self.repository.find_by_name(name)
        if categoria is None:
            logger.warning(f"Category not found with name '{name}'")
            return ServiceResult.fail(ErrorType.NOT_FOUND, f"Category '{name}' not found")

        response = CategoriaResponse.model_validate(categoria)
        await self.cache.set(key, response.model_dump(mode="json"))
        return ServiceResult.ok(response)

    async def get_by_id(self, category_id: uuid.UUID) -> ServiceResult:
        categoria = self.repository.find_by_id(category_id)
        if categoria is None:
            logger.warning(f"Category not found with id {category_id}")
            return ServiceResult.fail(ErrorType.NOT_FOUND, f"Category with id {category_id} not found")
        return ServiceResult.ok(CategoriaResponse.model_validate(categoria))

    async def create(self, request: CategoriaRequest) -> ServiceResult:
        if self.repository.find_by_name(request.name) is not None:
            return ServiceResult.fail(ErrorType.CONFLICT, f"Category '{request.name}' already exists")

        try:
            categoria = self.repository.add(Categoria(name=request.name))
        except IntegrityError:
            logger.warning(f"Duplicate category name '{request.name}'")
            return ServiceResult.fail(ErrorType.CONFLICT, f"Category '{request.name}' already exists")

        response = CategoriaResponse.model_validate(categoria)
        logger.info(f"Category created: {response.name} ({response.id})")
        self._notify(CREATED, response)
        return ServiceResult.ok(response)

    async def update(self, category_id: uuid.UUID, request: CategoriaRequest) -> ServiceResult:
        categoria = self.repository.find_by_id(category_id)
        if categoria is None:
            return ServiceResult.fail(ErrorType.NOT_FOUND, f"Category with id {category_id} not found")

        existing = self.repository.find_by_name(request.name)
        if existing is not None and existing.id != categoria.id:
            return ServiceResult.fail(ErrorType.CONFLICT, f"Category '{request.name}' already exists")

        old_name = categoria.name
        categoria.name = request.name
        try:
            categoria = self.repository.update(categoria)
        except IntegrityError:
            return ServiceResult.fail(ErrorType.CONFLICT, f"Category '{request.name}' already exists")

        await self.cache.remove(cache_key(old_name))
        await self.cache.remove(cache_key(request.name))
        await self.cache.remove_by_pattern(f"{FUNKO_CACHE_PREFIX}*")

        response = CategoriaResponse.model_validate(categoria)
        logger.info(f"Category {category_id} renamed from '{old_name}' to '{response.name}'")
        self._notify(UPDATED, response)
        return ServiceResult.ok(response)

    async def delete(self, category_id: uuid.UUID) -> ServiceResult:
        categoria = self.repository.find_by_id(category_id)
        if categoria is None:
            return ServiceResult.fail(ErrorType.NOT_FOUND, f"Category with id {category_id} not found")

        if self.repository.has_funkos(categoria.id):
            return ServiceResult.fail(
                ErrorType.CONFLICT,
                f"Category '{categoria.name}' still has funkos and cannot be deleted",
            )

        response = CategoriaResponse.model_validate(categoria)
        try:
            self.repository.delete(categoria)
        except IntegrityError:
            return ServiceResult.fail(
                ErrorType.CONFLICT,
                f"Category '{response.name}' is referenced and cannot be deleted",
            )

        await self.cache.remove(cache_key(response.name))
        await self.cache.remove_by_pattern(f"{FUNKO_CACHE_PREFIX}*")
        logger.info(f"Category {category_id} deleted")
        self._notify(DELETED, response)
        return ServiceResult.ok(response)

    def _notify(self, event_type: str, response: CategoriaResponse):
        notification = categoria_notification(event_type, response.id, response.model_dump(mode="json"))
        self.dispatcher.submit(
            f"ws-categoria-{event_type.lower()}-{response.id}",
            lambda: self.notifier.broadcast(notification),
        )

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.errors import ErrorType
from app.models.categories import Categoria
from app.schemas.categories import CategoriaRequest
from app.services.background import BackgroundDispatcher
from app.services.cache_service import MemoryCacheService
from app.services.categoria_service import CategoriaService
from app.services.notifications import CREATED, UPDATED


@pytest.fixture
async def dispatcher():
    dispatcher = BackgroundDispatcher(workers=1, max_queue_size=10)
    await dispatcher.start()
    yield dispatcher
    await dispatcher.stop()


@pytest.fixture
def repository():
    return MagicMock()


@pytest.fixture
def notifier():
    return AsyncMock()


@pytest.fixture
def cache():
    return MemoryCacheService()


@pytest.fixture
def service(repository, cache, notifier, dispatcher):
    return CategoriaService(repository=repository, cache=cache, notifier=notifier, dispatcher=dispatcher)


async def test_get_by_name_is_cached(service, repository):
    repository.find_by_name.return_value = Categoria(id=uuid.uuid4(), name="Anime")

    first = await service.get_by_name("Anime")
    second = await service.get_by_name("anime")

    assert first.value == second.value
    repository.find_by_name.assert_called_once_with("Anime")


async def test_get_by_id_and_by_name_are_distinct(service, repository):
    categoria_id = uuid.uuid4()
    repository.find_by_id.return_value = None

    result = await service.get_by_id(categoria_id)

    assert result.error.error_type == ErrorType.NOT_FOUND
    repository.find_by_id.assert_called_once_with(categoria_id)
    repository.find_by_name.assert_not_called()


async def test_create_notifies_only_websocket(service, repository, notifier, dispatcher):
    repository.find_by_name.return_value = None
    repository.add.side_effect = lambda categoria: Categoria(id=uuid.uuid4(), name=categoria.name)

    result = await service.create(CategoriaRequest(name="DC"))
    await dispatcher.join()

    assert result.is_success
    notifier.broadcast.assert_awaited_once()
    notification = notifier.broadcast.await_args.args[0]
    assert notification.type == CREATED
    assert notification.to_dict()["categoria"]["name"] == "DC"


async def test_duplicate_name_is_conflict(service, repository):
    repository.find_by_name.return_value = Categoria(id=uuid.uuid4(), name="DC")

    result = await service.create(CategoriaRequest(name="DC"))

    assert result.error.error_type == ErrorType.CONFLICT
    repository.add.assert_not_called()


async def test_integrity_error_is_conflict(service, repository):
    repository.find_by_name.return_value = None
    repository.add.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    result = await service.create(CategoriaRequest(name="DC"))

    assert result.error.error_type == ErrorType.CONFLICT


async def test_rename_evicts_category_and_funko_entries(service, repository, cache, notifier, dispatcher):
    categoria = Categoria(id=uuid.uuid4(), name="Marvel")
    repository.find_by_id.return_value = categoria
    repository.find_by_name.return_value = None
    repository.update.side_effect = lambda c: c
    await cache.set("Categoria_marvel", {"id": str(categoria.id), "name": "Marvel"})
    await cache.set("Funko_1", {"id": 1})
    await cache.set("Funko_2", {"id": 2})

    result = await service.update(categoria.id, CategoriaRequest(name="Marvel Comics"))
    await dispatcher.join()

    assert result.value.name == "Marvel Comics"
    assert len(cache) == 0
    assert notifier.broadcast.await_args.args[0].type == UPDATED


async def test_delete_with_funkos_is_conflict(service, repository, notifier):
    categoria = Categoria(id=uuid.uuid4(), name="DC")
    repository.find_by_id.return_value = categoria
    repository.has_funkos.return_value = True

    result = await service.delete(categoria.id)

    assert result.error.error_type == ErrorType.CONFLICT
    repository.delete.assert_not_called()
    notifier.broadcast.assert_not_awaited()


async def test_delete_missing_category_skips_cache(repository, notifier, dispatcher):
    cache = AsyncMock()
    service = CategoriaService(repository=repository, cache=cache, notifier=notifier, dispatcher=dispatcher)
    repository.find_by_id.return_value = None

    result = await service.delete(uuid.uuid4())

    assert result.error.error_type == ErrorType.NOT_FOUND
    repository.delete.assert_not_called()
    cache.remove.assert_not_awaited()
    cache.remove_by_pattern.assert_not_awaited()
    notifier.broadcast.assert_not_awaited()

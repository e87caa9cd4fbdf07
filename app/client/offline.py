import logging
from typing import List, Optional

import httpx

from app.client.api import CatalogApiClient
from app.client.store import CREATE, DELETE, UPDATE, OfflineStore, PendingOperation, parse_local_ref
from app.client.sync import OperationExecutor, PendingDependencyError, SyncService

logger = logging.getLogger(__name__)

FUNKO = "funko"
CATEGORIA = "categoria"

PENDING_IMAGE = "pending-upload.png"


class _EntityExecutor(OperationExecutor):
    def __init__(self, api: CatalogApiClient, store: OfflineStore):
        self.api = api
        self.store = store

    def _server_id(self, payload: dict):
        if payload.get("id") is not None:
            return payload["id"]
        local_id = payload.get("local_id")
        server_id = self.store.server_id_for(local_id) if local_id is not None else None
        if server_id is None:
            raise PendingDependencyError(f"{self.entity} local:{local_id} has no server id yet")
        return server_id

    async def execute(self, operation: PendingOperation) -> None:
        payload = operation.payload
        if operation.type == CREATE:
            created = await self._create(payload)
            if payload.get("local_id") is not None:
                self.store.assign_server_id(payload["local_id"], created["id"], created)
            else:
                self.store.upsert_server_record(self.entity, created)
        elif operation.type == UPDATE:
            updated = await self._update(self._server_id(payload), payload)
            self.store.upsert_server_record(self.entity, updated)
        elif operation.type == DELETE:
            server_id = self._server_id(payload)
            await self._delete(server_id)
            local_id = self.store.find_local_id(self.entity, server_id)
            if local_id is not None:
                self.store.delete_local(local_id)
        else:
            raise ValueError(f"Unknown operation type {operation.type}")

    async def _create(self, payload: dict) -> dict:
        raise NotImplementedError

    async def _update(self, server_id, payload: dict) -> dict:
        raise NotImplementedError

    async def _delete(self, server_id) -> None:
        raise NotImplementedError


class CategoriaExecutor(_EntityExecutor):
    entity = CATEGORIA

    async def _create(self, payload):
        return await self.api.create_categoria(payload["name"])

    async def _update(self, server_id, payload):
        return await self.api.update_categoria(server_id, payload["name"])

    async def _delete(self, server_id):
        await self.api.delete_categoria(server_id)


class FunkoExecutor(_EntityExecutor):
    entity = FUNKO

    async def _create(self, payload):
        return await self.api.create_funko(
            payload["name"], payload["price"], payload["category"], payload.get("image_path")
        )

    async def _update(self, server_id, payload):
        return await self.api.update_funko(
            server_id, payload["name"], payload["price"], payload["category"], payload.get("image_path")
        )

    async def _delete(self, server_id):
        await self.api.delete_funko(server_id)


class OfflineCatalog:
    """
    Catalog facade used by the client application.

    Mutations go straight to the API; when the backend cannot be reached
    they are stored locally and queued for replay instead. HTTP errors
    returned by a reachable backend are raised to the caller.
    """

    def __init__(self, api: CatalogApiClient, store: OfflineStore, sync: SyncService):
        self.api = api
        self.store = store
        self.sync = sync
        sync.register_executor(CategoriaExecutor(api, store))
        sync.register_executor(FunkoExecutor(api, store))

    def _local_id_of(self, entity: str, record_id) -> Optional[int]:
        local_id = parse_local_ref(record_id)
        if local_id is not None:
            return local_id
        return self.store.find_local_id(entity, record_id)

    def _server_id_of(self, record_id):
        local_id = parse_local_ref(record_id)
        return record_id if local_id is None else self.store.server_id_for(local_id)

    def _pending_deletes(self, entity: str) -> set:
        return {
            str(operation.payload["id"]) for operation in self.store.list_operations()
            if operation.type == DELETE and operation.entity == entity and "id" in operation.payload
        }

    async def _list(self, entity: str, fetch) -> List[dict]:
        try:
            records = await fetch()
        except httpx.TransportError as e:
            logger.warning(f"Backend unreachable, serving local {entity} records: {str(e)}")
            return self.store.list_records(entity)
        deleted = self._pending_deletes(entity)
        self.store.replace_snapshot(entity, [r for r in records if str(r["id"]) not in deleted])
        return self.store.list_records(entity)

    async def _create(self, entity: str, send, local_payload: dict, queued_payload: dict) -> dict:
        try:
            created = await send()
        except httpx.TransportError as e:
            logger.warning(f"Backend unreachable, {entity} create queued: {str(e)}")
            local_id = self.store.save_local(entity, local_payload)
            await self.sync.add_pending_operation(CREATE, entity, {"local_id": local_id, **queued_payload})
            return self.store.get_record(local_id)
        self.store.upsert_server_record(entity, created)
        return created

    async def _update(self, entity: str, record_id, send, payload: dict) -> dict:
        local_id = self._local_id_of(entity, record_id)
        server_id = self._server_id_of(record_id)
        try:
            if server_id is None:
                raise PendingDependencyError(f"{entity} {record_id} is not synced yet")
            updated = await send(server_id)
        except (httpx.TransportError, PendingDependencyError) as e:
            logger.warning(f"{entity} {record_id} update queued: {str(e)}")
            if local_id is not None:
                record = self.store.get_record(local_id) or {}
                record.update(payload)
                record.pop("id", None)
                self.store.update_local(local_id, record)
            target = {"id": server_id} if server_id is not None else {"local_id": local_id}
            await self.sync.add_pending_operation(UPDATE, entity, {**target, **payload})
            return self.store.get_record(local_id) if local_id is not None else {"id": record_id, **payload}
        self.store.upsert_server_record(entity, updated)
        return updated

    async def _delete(self, entity: str, record_id, send) -> None:
        local_id = self._local_id_of(entity, record_id)
        server_id = self._server_id_of(record_id)
        if server_id is None:
            # not on the server yet: drop its queued create and updates
            dropped = self.store.delete_operations_for(entity, local_id)
            self.store.delete_local(local_id)
            self.sync.refresh_pending_count()
            logger.info(f"{entity} {record_id} discarded locally ({dropped} queued operation(s) dropped)")
            return

        try:
            await send(server_id)
        except httpx.TransportError as e:
            logger.warning(f"{entity} {record_id} delete queued: {str(e)}")
            await self.sync.add_pending_operation(DELETE, entity, {"id": server_id})
        if local_id is not None:
            self.store.delete_local(local_id)

    # categorias

    async def list_categorias(self) -> List[dict]:
        return await self._list(CATEGORIA, self.api.list_categorias)

    async def create_categoria(self, name: str) -> dict:
        payload = {"name": name}
        return await self._create(CATEGORIA, lambda: self.api.create_categoria(name), payload, payload)

    async def update_categoria(self, categoria_id, name: str) -> dict:
        return await self._update(
            CATEGORIA, categoria_id, lambda server_id: self.api.update_categoria(server_id, name), {"name": name}
        )

    async def delete_categoria(self, categoria_id) -> None:
        await self._delete(CATEGORIA, categoria_id, lambda server_id: self.api.delete_categoria(server_id))

    # funkos

    async def list_funkos(self) -> List[dict]:
        return await self._list(FUNKO, self.api.list_funkos)

    async def create_funko(self, name: str, price: float, category: str, image_path: Optional[str] = None) -> dict:
        fields = {"name": name, "price": price, "category": category}
        return await self._create(
            FUNKO,
            lambda: self.api.create_funko(name, price, category, image_path),
            {**fields, "image": PENDING_IMAGE if image_path else "default.png"},
            {**fields, "image_path": image_path},
        )

    async def update_funko(
        self, funko_id, name: str, price: float, category: str, image_path: Optional[str] = None
    ) -> dict:
        fields = {"name": name, "price": price, "category": category, "image_path": image_path}
        return await self._update(
            FUNKO,
            funko_id,
            lambda server_id: self.api.update_funko(server_id, name, price, category, image_path),
            fields,
        )

    async def delete_funko(self, funko_id) -> None:
        await self._delete(FUNKO, funko_id, lambda server_id: self.api.delete_funko(server_id))

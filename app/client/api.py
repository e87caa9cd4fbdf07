import logging
import mimetypes
import os
from typing import List, Optional

import httpx

logger = logging.getLogger(__name__)


class CatalogApiClient:
    """Async HTTP client for the Funko catalog REST API."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def _request(self, method: str, url: str, **kwargs):
        response = await self._client.request(method, url, headers=self._headers(), **kwargs)
        response.raise_for_status()
        return response.json() if response.content else None

    async def ping(self) -> bool:
        try:
            response = await self._client.get("/")
            return response.status_code < 500
        except httpx.TransportError:
            return False

    async def signin(self, username: str, password: str) -> dict:
        data = await self._request("POST", "/api/auth/signin", json={"username": username, "password": password})
        self.token = data["token"]
        logger.info(f"Signed in as {data['user']['username']}")
        return data

    # funkos

    async def list_funkos(self, skip: int = 0, limit: int = 100) -> List[dict]:
        return await self._request("GET", "/api/funkos", params={"skip": skip, "limit": limit})

    async def get_funko(self, funko_id: int) -> dict:
        return await self._request("GET", f"/api/funkos/{funko_id}")

    def _funko_form(self, name: str, price: float, category: str, image_path: Optional[str]):
        data = {"name": name, "price": str(price), "category": category}
        files = None
        if image_path:
            with open(image_path, "rb") as image:
                content = image.read()
            media_type = mimetypes.guess_type(image_path)[0] or "application/octet-stream"
            files = {"file": (os.path.basename(image_path), content, media_type)}
        return data, files

    async def create_funko(self, name: str, price: float, category: str, image_path: Optional[str] = None) -> dict:
        data, files = self._funko_form(name, price, category, image_path)
        return await self._request("POST", "/api/funkos", data=data, files=files)

    async def update_funko(
        self, funko_id, name: str, price: float, category: str, image_path: Optional[str] = None
    ) -> dict:
        data, files = self._funko_form(name, price, category, image_path)
        return await self._request("PUT", f"/api/funkos/{funko_id}", data=data, files=files)

    async def delete_funko(self, funko_id) -> dict:
        return await self._request("DELETE", f"/api/funkos/{funko_id}")

    # categorias

    async def list_categorias(self) -> List[dict]:
        return await self._request("GET", "/api/categoria")

    async def create_categoria(self, name: str) -> dict:
        return await self._request("POST", "/api/categoria", json={"name": name})

    async def update_categoria(self, categoria_id, name: str) -> dict:
        return await self._request("PUT", f"/api/categoria/{categoria_id}", json={"name": name})

    async def delete_categoria(self, categoria_id) -> dict:
        return await self._request("DELETE", f"/api/categoria/{categoria_id}")

import re
import time

import pytest
from starlette.websockets import WebSocketDisconnect


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


class TestFunkoReads:
    def test_list_funkos(self, client, dc_category, funko_factory):
        funko_factory("Batman", 10.0, dc_category)
        funko_factory("Joker", 12.5, dc_category)

        response = client.get("/api/funkos")

        assert response.status_code == 200
        data = response.json()
        assert [item["name"] for item in data] == ["Batman", "Joker"]
        assert data[0]["category"] == "DC"
        assert data[0]["image"] == "default.png"

    def test_get_twice_populates_cache(self, client, container, dc_category, funko_factory):
        funko = funko_factory("Batman", 10.0, dc_category)

        first = client.get(f"/api/funkos/{funko.id}")
        assert f"Funko_{funko.id}" in container.cache.cache
        second = client.get(f"/api/funkos/{funko.id}")

        assert first.status_code == second.status_code == 200
        assert first.json() == second.json()

    def test_missing_funko_returns_error_envelope(self, client):
        response = client.get("/api/funkos/999")

        assert response.status_code == 404
        body = response.json()
        assert body["errorType"] == "NotFoundError"
        assert len(body["errorId"]) == 8
        assert body["path"] == "/api/funkos/999"
        assert body["method"] == "GET"
        assert "timestamp" in body


class TestFunkoWrites:
    def test_create_batman_broadcasts_and_emails(self, client, container, admin_headers, dc_category):
        with client.websocket_connect("/ws/funkos") as websocket:
            response = client.post(
                "/api/funkos",
                data={"name": "Batman", "price": "10", "category": "DC"},
                headers=admin_headers,
            )
            assert response.status_code == 201
            created = response.json()

            message = websocket.receive_json()

        assert message["entity"] == "funkos"
        assert message["type"] == "CREATED"
        assert message["funkoId"] == created["id"]
        assert message["funko"]["name"] == "Batman"
        assert f"Funko_{created['id']}" in container.cache.cache
        assert wait_for(lambda: len(container.mail.outbox) == 1)
        assert container.mail.outbox[0].subject == "Nuevo Producto"

    def test_create_with_unknown_category(self, client, container, admin_headers, dc_category):
        response = client.post(
            "/api/funkos",
            data={"name": "Aquaman", "price": "10", "category": "Atlantis"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["errorType"] == "ValidationError"
        assert client.get("/api/funkos").json() == []
        assert container.dispatcher.submitted == 0

    def test_invalid_price_lists_field_errors(self, client, admin_headers, dc_category):
        response = client.post(
            "/api/funkos",
            data={"name": "Batman", "price": "0", "category": "DC"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["errorType"] == "ValidationError"
        assert "price" in body["errors"]

    def test_create_requires_token(self, client, dc_category):
        response = client.post("/api/funkos", data={"name": "Batman", "price": "10", "category": "DC"})

        assert response.status_code == 401
        assert response.json()["errorType"] == "UnauthorizedError"

    def test_create_requires_admin(self, client, user_headers, dc_category):
        response = client.post(
            "/api/funkos",
            data={"name": "Batman", "price": "10", "category": "DC"},
            headers=user_headers,
        )

        assert response.status_code == 403

    def test_create_with_image_upload(self, client, admin_headers, dc_category, png_bytes):
        response = client.post(
            "/api/funkos",
            data={"name": "Batman", "price": "10", "category": "DC"},
            files={"file": ("batman.png", png_bytes, "image/png")},
            headers=admin_headers,
        )

        assert response.status_code == 201
        image = response.json()["image"]
        assert re.match(r"^\d{14}_[0-9a-f]{16}\.png$", image)

        url = client.get(f"/api/files/url/{image}")
        assert url.json() == {"fileName": image, "url": f"/uploads/images/{image}"}
        download = client.get(f"/api/files/download/{image}")
        assert download.status_code == 200
        assert download.content == png_bytes
        assert download.headers["content-type"] == "image/png"

    def test_create_with_invalid_image(self, client, admin_headers, dc_category):
        response = client.post(
            "/api/funkos",
            data={"name": "Batman", "price": "10", "category": "DC"},
            files={"file": ("batman.png", b"not really a png", "image/png")},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["errorType"] == "ValidationError"
        assert "not a valid image" in response.json()["message"]

    def test_update_invalidates_cache_and_keeps_image(
        self, client, container, admin_headers, dc_category, categoria_factory, funko_factory
    ):
        categoria_factory("Marvel")
        funko = funko_factory("Batman", 10.0, dc_category)
        client.get(f"/api/funkos/{funko.id}")
        assert f"Funko_{funko.id}" in container.cache.cache

        response = client.put(
            f"/api/funkos/{funko.id}",
            data={"name": "Iron Man", "price": "30", "category": "Marvel"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert f"Funko_{funko.id}" not in container.cache.cache
        updated = client.get(f"/api/funkos/{funko.id}").json()
        assert updated["name"] == "Iron Man"
        assert updated["category"] == "Marvel"
        assert updated["image"] == "default.png"

    def test_delete_funko(self, client, admin_headers, dc_category, funko_factory):
        funko = funko_factory("Batman", 10.0, dc_category)

        response = client.delete(f"/api/funkos/{funko.id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["id"] == funko.id
        assert client.get(f"/api/funkos/{funko.id}").status_code == 404
        assert client.delete(f"/api/funkos/{funko.id}", headers=admin_headers).status_code == 404


class TestSubscriptions:
    def test_created_event_is_streamed(self, client, container, admin_headers, dc_category):
        with client.websocket_connect("/ws/subscriptions/onFunkoCreado") as websocket:
            assert wait_for(lambda: container.events.subscriber_count("onFunkoCreado") == 1)
            created = client.post(
                "/api/funkos",
                data={"name": "Batman", "price": "10", "category": "DC"},
                headers=admin_headers,
            ).json()
            message = websocket.receive_json()

        assert message["topic"] == "onFunkoCreado"
        assert message["data"]["funko_id"] == created["id"]
        assert message["data"]["name"] == "Batman"

    def test_disconnect_unsubscribes_without_events(self, client, container):
        with client.websocket_connect("/ws/subscriptions/onFunkoEliminado"):
            assert wait_for(lambda: container.events.subscriber_count("onFunkoEliminado") == 1)

        assert wait_for(lambda: container.events.subscriber_count("onFunkoEliminado") == 0)

    def test_unknown_topic_is_refused(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws/subscriptions/onNothing") as websocket:
                websocket.receive_text()


class TestFiles:
    def test_download_missing_file(self, client):
        response = client.get("/api/files/download/missing.png")

        assert response.status_code == 404
        assert response.json()["errorType"] == "NotFoundError"

    def test_url_for_missing_file(self, client):
        assert client.get("/api/files/url/missing.png").status_code == 404


def test_root_and_health(client):
    assert client.get("/").json() == {"status": "ok"}
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["checks"] == {"database": "ok", "cache": "ok"}

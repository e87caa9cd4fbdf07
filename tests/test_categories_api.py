class TestCategoriaApi:
    def test_create_and_list(self, client, admin_headers):
        response = client.post("/api/categoria", json={"name": "Anime"}, headers=admin_headers)

        assert response.status_code == 201
        assert response.json()["name"] == "Anime"
        assert [c["name"] for c in client.get("/api/categoria").json()] == ["Anime"]

    def test_create_broadcasts_on_categorias_channel(self, client, admin_headers):
        with client.websocket_connect("/ws/categorias") as websocket:
            created = client.post("/api/categoria", json={"name": "Anime"}, headers=admin_headers).json()
            message = websocket.receive_json()

        assert message["entity"] == "categoria"
        assert message["type"] == "CREATED"
        assert message["categoriaId"] == created["id"]
        assert message["categoria"]["name"] == "Anime"

    def test_duplicate_name_is_conflict(self, client, admin_headers, dc_category):
        response = client.post("/api/categoria", json={"name": "dc"}, headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["errorType"] == "ConflictError"

    def test_short_name_is_rejected(self, client, admin_headers):
        response = client.post("/api/categoria", json={"name": "X"}, headers=admin_headers)

        assert response.status_code == 400
        assert "name" in response.json()["errors"]

    def test_get_by_name(self, client, container, dc_category):
        response = client.get("/api/categoria/by-name/DC")

        assert response.status_code == 200
        assert response.json()["id"] == str(dc_category.id)
        assert "Categoria_dc" in container.cache.cache

    def test_get_by_id_requires_authentication(self, client, user_headers, dc_category):
        assert client.get(f"/api/categoria/{dc_category.id}").status_code == 401

        response = client.get(f"/api/categoria/{dc_category.id}", headers=user_headers)
        assert response.status_code == 200
        assert response.json()["name"] == "DC"

    def test_rename_evicts_name_cache(self, client, container, admin_headers, dc_category):
        client.get("/api/categoria/by-name/DC")

        response = client.put(f"/api/categoria/{dc_category.id}", json={"name": "DC Comics"}, headers=admin_headers)

        assert response.status_code == 200
        assert "Categoria_dc" not in container.cache.cache
        assert client.get("/api/categoria/by-name/DC").status_code == 404
        assert client.get("/api/categoria/by-name/DC Comics").status_code == 200

    def test_delete_category_in_use_is_conflict(self, client, admin_headers, dc_category, funko_factory):
        funko_factory("Batman", 10.0, dc_category)

        response = client.delete(f"/api/categoria/{dc_category.id}", headers=admin_headers)

        assert response.status_code == 409

    def test_delete_category(self, client, admin_headers, dc_category):
        response = client.delete(f"/api/categoria/{dc_category.id}", headers=admin_headers)

        assert response.status_code == 200
        assert client.get("/api/categoria").json() == []

    def test_writes_require_admin(self, client, user_headers):
        response = client.post("/api/categoria", json={"name": "Anime"}, headers=user_headers)

        assert response.status_code == 403
        assert response.json()["errorType"] == "ForbiddenError"

import jwt

from app.core.config import Config


def signup(client, username="johndoe", email="john@example.com", password="secret123"):
    return client.post("/api/auth/signup", json={"username": username, "email": email, "password": password})


class TestSignup:
    def test_signup_returns_token_and_profile(self, client):
        response = signup(client)

        assert response.status_code == 201
        body = response.json()
        assert body["user"]["username"] == "johndoe"
        assert body["user"]["role"] == "USER"
        claims = jwt.decode(
            body["token"], Config.JWT_SECRET_KEY, algorithms=["HS256"],
            audience=Config.JWT_AUDIENCE, issuer=Config.JWT_ISSUER,
        )
        assert claims["sub"] == "johndoe"
        assert claims["email"] == "john@example.com"
        assert claims["role"] == "USER"
        assert claims["nameid"] == str(body["user"]["id"])

    def test_duplicate_username(self, client):
        signup(client)

        response = signup(client, email="other@example.com")

        assert response.status_code == 409
        assert response.json()["message"] == "username already exists"

    def test_duplicate_email(self, client):
        signup(client)

        response = signup(client, username="someone_else")

        assert response.status_code == 409
        assert response.json()["message"] == "email already exists"

    def test_invalid_username(self, client):
        response = signup(client, username="john doe!")

        assert response.status_code == 400
        assert "username" in response.json()["errors"]


class TestSignin:
    def test_signin(self, client):
        signup(client)

        response = client.post("/api/auth/signin", json={"username": "johndoe", "password": "secret123"})

        assert response.status_code == 200
        token = response.json()["token"]
        me = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["username"] == "johndoe"

    def test_wrong_password(self, client):
        signup(client)

        response = client.post("/api/auth/signin", json={"username": "johndoe", "password": "nope123"})

        assert response.status_code == 401
        assert response.json()["message"] == "invalid credentials"
        assert response.json()["errorType"] == "UnauthorizedError"

    def test_garbage_token(self, client):
        response = client.get("/api/users/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401


class TestSoftDelete:
    def test_deleted_user_cannot_sign_in(self, client, admin_headers):
        created = signup(client).json()

        response = client.delete(f"/api/users/{created['user']['id']}", headers=admin_headers)

        assert response.status_code == 200
        signin = client.post("/api/auth/signin", json={"username": "johndoe", "password": "secret123"})
        assert signin.status_code == 401
        me = client.get("/api/users/me", headers={"Authorization": f"Bearer {created['token']}"})
        assert me.status_code == 401

    def test_only_admin_can_delete(self, client, user_headers, admin_user):
        response = client.delete(f"/api/users/{admin_user.id}", headers=user_headers)

        assert response.status_code == 403

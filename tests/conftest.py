import io
import os
import tempfile

# Test environment: in-memory SQLite, throwaway upload root, memory cache and mail
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_ROOT"] = tempfile.mkdtemp(prefix="funko-uploads-")
os.environ["JWT_SECRET_KEY"] = "test-secret-key-with-enough-bytes-for-hs256-signing"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["EMAIL_BACKEND"] = "memory"
os.environ["ADMIN_EMAIL"] = "admin@funkoapi.test"

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.core.security import create_access_token, hash_password
from app.database import Base, SessionLocal, engine
from app.models.categories import Categoria
from app.models.funkos import Funko
from app.models.user import User, UserRole
from main import app


@pytest.fixture(autouse=True)
def reset_database():
    """Fresh schema for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def container(client):
    return client.app.state.container


def _add(instance):
    db = SessionLocal()
    try:
        db.add(instance)
        db.commit()
        db.refresh(instance)
        db.expunge(instance)
        return instance
    finally:
        db.close()


def create_user(username: str, role: UserRole = UserRole.USER, password: str = "secret123") -> User:
    return _add(User(
        username=username,
        email=f"{username}@funkoapi.test",
        password_hash=hash_password(password),
        role=role.value,
    ))


def create_categoria(name: str) -> Categoria:
    return _add(Categoria(name=name))


def create_funko(name: str, price: float, categoria: Categoria) -> Funko:
    return _add(Funko(name=name, price=price, category_id=categoria.id))


@pytest.fixture
def admin_user():
    return create_user("admin", UserRole.ADMIN)


@pytest.fixture
def normal_user():
    return create_user("jane", UserRole.USER)


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {create_access_token(admin_user)}"}


@pytest.fixture
def user_headers(normal_user):
    return {"Authorization": f"Bearer {create_access_token(normal_user)}"}


@pytest.fixture
def dc_category():
    return create_categoria("DC")


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def categoria_factory():
    return create_categoria


@pytest.fixture
def funko_factory():
    return create_funko


@pytest.fixture
def user_factory():
    return create_user

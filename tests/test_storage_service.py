import io
import re

import pytest
from starlette.datastructures import UploadFile

from app.services.storage_service import FileSystemStorageService, StorageError

NAME_PATTERN = re.compile(r"^\d{14}_[0-9a-f]{16}\.png$")


@pytest.fixture
def storage(tmp_path):
    return FileSystemStorageService(str(tmp_path), max_file_size=1024 * 1024)


async def test_save_file_generates_name(storage, png_bytes):
    name = await storage.save_file(UploadFile(file=io.BytesIO(png_bytes), filename="Batman.PNG"))

    assert NAME_PATTERN.match(name)
    assert storage.exists(name)
    assert storage.get_url(name) == f"/uploads/images/{name}"
    assert storage.list_files() == [name]


async def test_rejects_disallowed_extension(storage):
    with pytest.raises(StorageError):
        await storage.save_file(UploadFile(file=io.BytesIO(b"MZ..."), filename="virus.exe"))


async def test_rejects_bytes_that_are_not_an_image(storage):
    with pytest.raises(StorageError):
        await storage.save_file(UploadFile(file=io.BytesIO(b"plain text"), filename="fake.png"))


async def test_rejects_oversized_file(tmp_path, png_bytes):
    storage = FileSystemStorageService(str(tmp_path), max_file_size=10)

    with pytest.raises(StorageError):
        await storage.save_file(UploadFile(file=io.BytesIO(png_bytes), filename="big.png"))


def test_rejects_path_traversal(storage):
    with pytest.raises(StorageError):
        storage.get_path("../secret.txt")
    with pytest.raises(StorageError):
        storage.get_path("secret.txt", folder="../../etc")


async def test_delete_and_delete_all(storage, png_bytes):
    first = await storage.save_file(UploadFile(file=io.BytesIO(png_bytes), filename="a.png"))
    await storage.save_file(UploadFile(file=io.BytesIO(png_bytes), filename="b.png"))

    assert storage.delete_file(first) is True
    assert storage.delete_file(first) is False

    storage.delete_all()
    assert storage.list_files() == []

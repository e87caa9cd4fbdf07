from PIL import Image, UnidentifiedImageError
import io
import logging
import os
import shutil
from datetime import datetime, timezone
import uuid
from typing import List, Optional
from fastapi import UploadFile

from app.core.config import Config

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


class StorageError(Exception):
    """Raised when an uploaded file cannot be validated or written."""


class FileSystemStorageService:
    def __init__(
        self,
        root: str,
        max_file_size: int = 10 * 1024 * 1024,
        allowed_extensions: Optional[List[str]] = None,
        images_folder: str = "images",
    ):
        self.root = os.path.abspath(root)
        self.max_file_size = max_file_size
        self.allowed_extensions = {ext.lower() for ext in (allowed_extensions or IMAGE_EXTENSIONS)}
        self.images_folder = images_folder
        os.makedirs(os.path.join(self.root, self.images_folder), exist_ok=True)

    def _generate_filename(self, original_filename: str) -> str:
        """Generate unique filename: {UTC yyyyMMddHHmmss}_{16 hex chars}{ext}"""
        ext = os.path.splitext(original_filename or "")[1].lower()
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        unique_id = uuid.uuid4().hex[:16]
        return f"{timestamp}_{unique_id}{ext}"

    def _folder_path(self, folder: Optional[str]) -> str:
        folder = folder or self.images_folder
        path = os.path.abspath(os.path.join(self.root, folder))
        if os.path.commonpath([self.root, path]) != self.root:
            raise StorageError(f"Invalid folder: {folder}")
        return path

    def _verify_image(self, file_content: bytes) -> None:
        """Make sure the bytes really are an image Pillow can read"""
        try:
            with Image.open(io.BytesIO(file_content)) as image:
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise StorageError(f"File is not a valid image: {str(e)}")

    def validate(self, filename: str, content: bytes) -> str:
        ext = os.path.splitext(filename or "")[1].lower()
        if not ext or ext not in self.allowed_extensions:
            allowed = ", ".join(sorted(self.allowed_extensions))
            raise StorageError(f"File extension '{ext}' not allowed. Allowed: {allowed}")
        if not content:
            raise StorageError("File is empty")
        if len(content) > self.max_file_size:
            raise StorageError(f"File exceeds the maximum size of {self.max_file_size} bytes")
        if ext in IMAGE_EXTENSIONS:
            self._verify_image(content)
        return ext

    async def save_file(self, file: UploadFile, folder: Optional[str] = None) -> str:
        """
        Store an uploaded file under a generated name

        Args:
            file: FastAPI UploadFile
            folder: Folder under the storage root (defaults to images)

        Returns:
            The generated file name

        Raises:
            StorageError: If validation or writing fails
        """
        content = await file.read()
        self.validate(file.filename, content)

        folder_path = self._folder_path(folder)
        filename = self._generate_filename(file.filename)
        try:
            os.makedirs(folder_path, exist_ok=True)
            with open(os.path.join(folder_path, filename), "wb") as out:
                out.write(content)
        except OSError as e:
            raise StorageError(f"Failed to store file: {str(e)}")

        logger.info(f"Stored file {filename} ({len(content)} bytes) in {folder_path}")
        return filename

    def get_url(self, filename: str, folder: Optional[str] = None) -> str:
        return f"/uploads/{folder or self.images_folder}/{filename}"

    def get_path(self, filename: str, folder: Optional[str] = None) -> str:
        if not filename or os.path.basename(filename) != filename:
            raise StorageError(f"Invalid file name: {filename}")
        return os.path.join(self._folder_path(folder), filename)

    def exists(self, filename: str, folder: Optional[str] = None) -> bool:
        return os.path.isfile(self.get_path(filename, folder))

    def delete_file(self, filename: str, folder: Optional[str] = None) -> bool:
        path = self.get_path(filename, folder)
        if not os.path.isfile(path):
            return False
        os.remove(path)
        logger.info(f"Deleted file {path}")
        return True

    def delete_all(self) -> None:
        """Remove every stored file, keeping the folder layout"""
        for entry in os.listdir(self.root):
            path = os.path.join(self.root, entry)
            if os.path.isdir(path):
                shutil.rmtree(path)
            else:
                os.remove(path)
        os.makedirs(os.path.join(self.root, self.images_folder), exist_ok=True)
        logger.info(f"Cleared storage root {self.root}")

    def list_files(self, folder: Optional[str] = None) -> List[str]:
        folder_path = self._folder_path(folder)
        if not os.path.isdir(folder_path):
            return []
        return sorted(
            name for name in os.listdir(folder_path)
            if os.path.isfile(os.path.join(folder_path, name))
        )


def create_storage_service() -> FileSystemStorageService:
    service = FileSystemStorageService(
        Config.UPLOAD_ROOT,
        max_file_size=Config.MAX_FILE_SIZE,
        allowed_extensions=Config.ALLOWED_EXTENSIONS,
        images_folder=Config.IMAGES_FOLDER,
    )
    os.makedirs(os.path.join(service.root, Config.DOCUMENTS_FOLDER), exist_ok=True)
    if Config.DELETE_UPLOADS_ON_STARTUP:
        service.delete_all()
        os.makedirs(os.path.join(service.root, Config.DOCUMENTS_FOLDER), exist_ok=True)
    return service

import logging
import mimetypes

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from app.core.container import ServiceContainer
from app.core.dependencies import get_container
from app.core.errors import ErrorType
from app.core.exceptions import AppException
from app.services.storage_service import StorageError

router = APIRouter(tags=["files"])
logger = logging.getLogger(__name__)


def _resolve(container: ServiceContainer, name: str, folder: str) -> str:
    storage = container.storage
    try:
        if not storage.exists(name, folder):
            raise AppException(ErrorType.NOT_FOUND, f"File '{name}' not found")
        return storage.get_path(name, folder)
    except StorageError as e:
        raise AppException(ErrorType.BAD_REQUEST, str(e))


@router.get("/download/{name}")
async def download_file(
    name: str,
    folder: str = Query("images"),
    container: ServiceContainer = Depends(get_container),
):
    """Stream a stored file back with a content type guessed from its extension"""
    path = _resolve(container, name, folder)
    media_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
    logger.info(f"Serving file {folder}/{name}")
    return FileResponse(path, media_type=media_type, filename=name)


@router.get("/url/{name}")
async def get_file_url(
    name: str,
    folder: str = Query("images"),
    container: ServiceContainer = Depends(get_container),
):
    _resolve(container, name, folder)
    return {"fileName": name, "url": container.storage.get_url(name, folder)}

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import ValidationError

from app.core.dependencies import get_funko_service, require_role
from app.core.errors import ErrorType
from app.core.exceptions import AppException
from app.models.user import User
from app.schemas.funkos import FunkoRequest, FunkoResponse
from app.services.funko_service import FunkoService

router = APIRouter(tags=["funkos"])
logger = logging.getLogger(__name__)


def parse_funko_form(
    name: str = Form(...),
    price: float = Form(...),
    category: str = Form(..., description="Category name"),
) -> FunkoRequest:
    """Validate multipart form fields into a FunkoRequest"""
    try:
        return FunkoRequest(name=name, price=price, category=category)
    except ValidationError as e:
        errors = {}
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"]) or "request"
            errors.setdefault(field, []).append(error["msg"])
        raise AppException(ErrorType.VALIDATION, "One or more validation errors occurred", errors)


@router.get(
    "",
    response_model=List[FunkoResponse],
    status_code=status.HTTP_200_OK,
    summary="Get all funkos",
)
async def get_all_funkos(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    service: FunkoService = Depends(get_funko_service),
):
    logger.info(f"Fetching funkos (skip={skip}, limit={limit})")
    return await service.get_all(skip, limit)


@router.get(
    "/{funko_id}",
    response_model=FunkoResponse,
    status_code=status.HTTP_200_OK,
    summary="Get funko by ID",
    description="Retrieve a funko by ID. Served from cache when possible"
)
async def get_funko(funko_id: int, service: FunkoService = Depends(get_funko_service)):
    return (await service.get_by_id(funko_id)).unwrap()


@router.post(
    "",
    response_model=FunkoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create funko",
    description="Create a funko from multipart form data with an optional image. Requires ADMIN role"
)
async def create_funko(
    current_user: User = Depends(require_role(["ADMIN"])),
    funko_data: FunkoRequest = Depends(parse_funko_form),
    file: Optional[UploadFile] = File(None),
    service: FunkoService = Depends(get_funko_service),
):
    """
    Create a new funko.

    Args:
        funko_data: Validated name, price and category name
        file: Optional image upload

    Returns:
        FunkoResponse: The created funko

    Raises:
        AppException: 400 if the category does not exist or the image is rejected
    """
    logger.info(f"Creating funko '{funko_data.name}' by {current_user.username}")
    return (await service.create(funko_data, file)).unwrap()


@router.put(
    "/{funko_id}",
    response_model=FunkoResponse,
    status_code=status.HTTP_200_OK,
    summary="Update funko",
    description="Update a funko. Without a new file the current image is kept. Requires ADMIN role"
)
async def update_funko(
    funko_id: int,
    current_user: User = Depends(require_role(["ADMIN"])),
    funko_data: FunkoRequest = Depends(parse_funko_form),
    file: Optional[UploadFile] = File(None),
    service: FunkoService = Depends(get_funko_service),
):
    logger.info(f"Updating funko {funko_id} by {current_user.username}")
    return (await service.update(funko_id, funko_data, file)).unwrap()


@router.delete(
    "/{funko_id}",
    status_code=status.HTTP_200_OK,
    summary="Delete funko",
    description="Delete a funko by ID. Requires ADMIN role"
)
async def delete_funko(
    funko_id: int,
    service: FunkoService = Depends(get_funko_service),
    current_user: User = Depends(require_role(["ADMIN"]))
):
    logger.info(f"Deleting funko {funko_id} by {current_user.username}")
    deleted = (await service.delete(funko_id)).unwrap()
    return {
        "message": f"Funko '{deleted.name}' deleted successfully",
        "id": deleted.id
    }

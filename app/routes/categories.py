import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.core.dependencies import get_categoria_service, get_current_user, require_role
from app.models.user import User
from app.schemas.categories import CategoriaRequest, CategoriaResponse
from app.services.categoria_service import CategoriaService

router = APIRouter(tags=["categorias"])
logger = logging.getLogger(__name__)


@router.get(
    "",
    response_model=List[CategoriaResponse],
    status_code=status.HTTP_200_OK,
    summary="Get all categories",
    description="Retrieve all funko categories ordered by name"
)
async def get_all_categories(service: CategoriaService = Depends(get_categoria_service)):
    logger.info("Fetching all categories")
    return await service.get_all()


@router.get(
    "/by-name/{name}",
    response_model=CategoriaResponse,
    status_code=status.HTTP_200_OK,
    summary="Get category by name",
    description="Retrieve a category by its unique name (cached)"
)
async def get_category_by_name(name: str, service: CategoriaService = Depends(get_categoria_service)):
    """
    Look up a category by its display name.

    Args:
        name: Category name, matched case-insensitively

    Returns:
        CategoriaResponse: The category

    Raises:
        AppException: 404 if no category has that name
    """
    result = await service.get_by_name(name)
    return result.unwrap()


@router.get(
    "/{category_id}",
    response_model=CategoriaResponse,
    status_code=status.HTTP_200_OK,
    summary="Get category by ID",
    description="Retrieve a specific category by its UUID"
)
async def get_category(
    category_id: UUID,
    service: CategoriaService = Depends(get_categoria_service),
    current_user: User = Depends(get_current_user)
):
    result = await service.get_by_id(category_id)
    return result.unwrap()


@router.post(
    "",
    response_model=CategoriaResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create category",
    description="Create a new category. Requires ADMIN role"
)
async def create_category(
    category_data: CategoriaRequest,
    service: CategoriaService = Depends(get_categoria_service),
    current_user: User = Depends(require_role(["ADMIN"]))
):
    """
    Create a new category.

    Raises:
        AppException: 409 if a category with the same name exists
    """
    logger.info(f"Creating category '{category_data.name}' by {current_user.username}")
    result = await service.create(category_data)
    return result.unwrap()


@router.put(
    "/{category_id}",
    response_model=CategoriaResponse,
    status_code=status.HTTP_200_OK,
    summary="Update category",
    description="Rename an existing category. Requires ADMIN role"
)
async def update_category(
    category_id: UUID,
    category_data: CategoriaRequest,
    service: CategoriaService = Depends(get_categoria_service),
    current_user: User = Depends(require_role(["ADMIN"]))
):
    logger.info(f"Updating category {category_id} by {current_user.username}")
    result = await service.update(category_id, category_data)
    return result.unwrap()


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_200_OK,
    summary="Delete category",
    description="Delete a category by ID. Requires ADMIN role"
)
async def delete_category(
    category_id: UUID,
    service: CategoriaService = Depends(get_categoria_service),
    current_user: User = Depends(require_role(["ADMIN"]))
):
    """
    Delete a category.

    Returns:
        dict: Success message

    Raises:
        AppException: 404 if not found, 409 if funkos still reference it
    """
    logger.info(f"Deleting category {category_id} by {current_user.username}")
    deleted = (await service.delete(category_id)).unwrap()
    return {
        "message": f"Category '{deleted.name}' deleted successfully",
        "id": str(deleted.id)
    }

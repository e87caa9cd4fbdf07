import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.dependencies import get_current_user, require_role
from app.core.errors import ErrorType
from app.core.exceptions import AppException
from app.database import get_db
from app.models.user import User
from app.repositories.users import UserRepository
from app.schemas.user import UserResponse

router = APIRouter(tags=["users"])
logger = logging.getLogger(__name__)


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.delete("/{user_id}", status_code=status.HTTP_200_OK)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(["ADMIN"]))
):
    """
    Soft delete a user. The row stays in the database but disappears
    from every query and can no longer authenticate.
    """
    users = UserRepository(db)
    user = users.find_by_id(user_id)
    if not user:
        raise AppException(ErrorType.NOT_FOUND, f"User with id {user_id} not found")
    if user.id == current_user.id:
        raise AppException(ErrorType.BAD_REQUEST, "You cannot delete your own account")

    users.soft_delete(user)
    logger.info(f"User {user_id} soft deleted by {current_user.username}")
    return {"message": f"User '{user.username}' deleted successfully", "id": user_id}

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.container import ServiceContainer
from app.core.security import verify_access_token
from app.database import get_db
from app.models.user import User
from app.repositories.categories import CategoriaRepository
from app.repositories.funkos import FunkoRepository
from app.repositories.users import UserRepository
from app.services.auth_service import AuthService
from app.services.categoria_service import CategoriaService
from app.services.funko_service import FunkoService


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_current_user(
    token_payload: dict = Depends(verify_access_token),
    db: Session = Depends(get_db)
) -> User:
    """
    Dependency to get the current authenticated user from the database.
    Validates the bearer token and returns the User object.
    """
    username = token_payload.get("sub")

    user = UserRepository(db).find_by_username(username) if username else None
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def require_role(allowed_roles: list):
    """
    Dependency factory to check if the user has a required role.
    Usage: Depends(require_role(["ADMIN"]))
    """
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join(allowed_roles)}"
            )
        return current_user
    return role_checker


def get_funko_service(
    db: Session = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> FunkoService:
    return FunkoService(
        repository=FunkoRepository(db),
        category_repository=CategoriaRepository(db),
        cache=container.cache,
        storage=container.storage,
        notifier=container.funko_notifier,
        publisher=container.events,
        mail=container.mail,
        dispatcher=container.dispatcher,
        admin_email=container.admin_email,
    )


def get_categoria_service(
    db: Session = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> CategoriaService:
    return CategoriaService(
        repository=CategoriaRepository(db),
        cache=container.cache,
        notifier=container.categoria_notifier,
        dispatcher=container.dispatcher,
    )


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(UserRepository(db))

import logging

from sqlalchemy.exc import IntegrityError

from app.core.errors import ErrorType
from app.core.security import create_access_token, hash_password, verify_password
from app.models.user import User, UserRole
from app.repositories.users import UserRepository
from app.schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from app.services.result import ServiceResult

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, users: UserRepository):
        self.users = users

    def signup(self, request: RegisterRequest) -> ServiceResult:
        if self.users.find_by_username(request.username) is not None:
            return ServiceResult.fail(ErrorType.CONFLICT, "username already exists")
        if self.users.find_by_email(request.email) is not None:
            return ServiceResult.fail(ErrorType.CONFLICT, "email already exists")

        user = User(
            username=request.username,
            email=request.email,
            password_hash=hash_password(request.password),
            role=UserRole.USER.value,
        )
        try:
            user = self.users.add(user)
        except IntegrityError:
            logger.warning(f"Signup conflict for username '{request.username}'")
            return ServiceResult.fail(ErrorType.CONFLICT, "username or email already exists")

        logger.info(f"User registered: {user.username} (id {user.id})")
        return ServiceResult.ok(self._auth_response(user))

    def signin(self, request: LoginRequest) -> ServiceResult:
        user = self.users.find_by_username(request.username)
        if user is None or not verify_password(request.password, user.password_hash):
            logger.warning(f"Failed sign-in for '{request.username}'")
            return ServiceResult.fail(ErrorType.UNAUTHORIZED, "invalid credentials")
        return ServiceResult.ok(self._auth_response(user))

    def _auth_response(self, user: User) -> AuthResponse:
        return AuthResponse(
            token=create_access_token(user),
            user=UserResponse.model_validate(user),
        )

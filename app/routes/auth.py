import logging

from fastapi import APIRouter, Depends, status

from app.core.dependencies import get_auth_service
from app.schemas.user import AuthResponse, LoginRequest, RegisterRequest
from app.services.auth_service import AuthService

router = APIRouter(tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(user: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    """Register a new USER account and return a bearer token with the profile"""
    logger.info(f"Signup attempt for username '{user.username}'")
    return service.signup(user).unwrap()


@router.post("/signin", response_model=AuthResponse, status_code=status.HTTP_200_OK)
async def signin(userdetails: LoginRequest, service: AuthService = Depends(get_auth_service)):
    return service.signin(userdetails).unwrap()

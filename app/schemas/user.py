from pydantic import BaseModel, Field, EmailStr
from datetime import datetime
from typing import Optional


class RegisterRequest(BaseModel):
    username: str = Field(
        min_length=3,
        max_length=50,
        pattern=r"^[a-zA-Z0-9_]+$",
        description="Username (3-50 letters, digits or underscores)"
    )
    email: EmailStr = Field(..., max_length=100, description="User email address")
    password: str = Field(
        min_length=6,
        max_length=100,
        description="Password (6-100 characters)",
        examples=["myPassword123"],
    )

    class Config:
        json_schema_extra = {
            "example": {
                "username": "johndoe",
                "email": "user@example.com",
                "password": "myPassword123"
            }
        }


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, description="Username")
    password: str = Field(..., min_length=1, description="User password")

    class Config:
        json_schema_extra = {
            "example": {
                "username": "johndoe",
                "password": "myPassword123"
            }
        }


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    token: str
    user: UserResponse

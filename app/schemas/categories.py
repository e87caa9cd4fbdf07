from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional
from uuid import UUID


class CategoriaRequest(BaseModel):
    """Schema for creating or renaming a category"""
    name: str = Field(..., min_length=2, max_length=100, description="Category name")

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("name must contain at least 2 non-blank characters")
        return value


class CategoriaResponse(BaseModel):
    """Schema for category response"""
    id: UUID = Field(..., description="Category ID")
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

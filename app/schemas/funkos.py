from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional

from app.models.funkos import Funko


class FunkoRequest(BaseModel):
    """Validated form fields of a funko write"""
    name: str = Field(..., min_length=2, max_length=100)
    price: float = Field(..., ge=0.01, le=9999.99)
    category: str = Field(..., min_length=2, max_length=100, description="Category name")

    @field_validator("name", "category")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()


class FunkoResponse(BaseModel):
    id: int
    name: str
    price: float
    category: str
    image: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, funko: Funko) -> "FunkoResponse":
        return cls(
            id=funko.id,
            name=funko.name,
            price=funko.price,
            category=funko.category.name if funko.category else "",
            image=funko.image,
            created_at=funko.created_at,
            updated_at=funko.updated_at,
        )

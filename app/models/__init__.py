# package marker for app.models

# Import all models to ensure relationships are properly initialized
from app.models.categories import Categoria
from app.models.funkos import Funko
from app.models.user import User, UserRole

__all__ = [
    "Categoria",
    "Funko",
    "User",
    "UserRole",
]

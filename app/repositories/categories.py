import logging
import uuid
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from app.models.categories import Categoria
from app.models.funkos import Funko

logger = logging.getLogger(__name__)


class CategoriaRepository:
    """
    Persistence for categories.

    Categories are reachable by two distinct keys: the UUID identity
    (find_by_id) and the unique display name (find_by_name).
    """

    def __init__(self, db: Session):
        self.db = db

    def find_all(self) -> List[Categoria]:
        return self.db.query(Categoria).order_by(Categoria.name).all()

    def find_by_id(self, category_id: uuid.UUID) -> Optional[Categoria]:
        return self.db.query(Categoria).filter(Categoria.id == category_id).first()

    def find_by_name(self, name: str) -> Optional[Categoria]:
        return (
            self.db.query(Categoria)
            .filter(func.lower(Categoria.name) == name.strip().lower())
            .first()
        )

    def has_funkos(self, category_id: uuid.UUID) -> bool:
        return self.db.query(Funko.id).filter(Funko.category_id == category_id).first() is not None

    def add(self, categoria: Categoria) -> Categoria:
        self.db.add(categoria)
        self._commit()
        self.db.refresh(categoria)
        logger.info(f"Category persisted with id {categoria.id}")
        return categoria

    def update(self, categoria: Categoria) -> Categoria:
        categoria.updated_at = func.now()
        self._commit()
        self.db.refresh(categoria)
        return categoria

    def delete(self, categoria: Categoria) -> None:
        self.db.delete(categoria)
        self._commit()

    def _commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from app.models.funkos import Funko

logger = logging.getLogger(__name__)


class FunkoRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_all(self, skip: int = 0, limit: int = 100) -> List[Funko]:
        return self.db.query(Funko).order_by(Funko.id).offset(skip).limit(limit).all()

    def find_by_id(self, funko_id: int) -> Optional[Funko]:
        return self.db.query(Funko).filter(Funko.id == funko_id).first()

    def add(self, funko: Funko) -> Funko:
        self.db.add(funko)
        self._commit()
        self.db.refresh(funko)
        logger.info(f"Funko persisted with id {funko.id}")
        return funko

    def update(self, funko: Funko) -> Funko:
        funko.updated_at = func.now()
        self._commit()
        self.db.refresh(funko)
        return funko

    def delete(self, funko: Funko) -> None:
        self.db.delete(funko)
        self._commit()

    def _commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

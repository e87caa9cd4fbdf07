from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base

IMAGE_DEFAULT = "default.png"


class Funko(Base):
    __tablename__ = "funkos"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    price = Column(Float, nullable=False)
    category_id = Column(Uuid, ForeignKey("categorias.id", ondelete="RESTRICT"), nullable=False, index=True)
    image = Column(String(255), nullable=False, default=IMAGE_DEFAULT)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    category = relationship("Categoria", back_populates="funkos", lazy="joined")

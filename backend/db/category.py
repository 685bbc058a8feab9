import uuid
from sqlalchemy import Column, Integer, String, Uuid
from .database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True, index=True)
    low_stock_threshold = Column(Integer, nullable=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "low_stock_threshold": self.low_stock_threshold,
        }

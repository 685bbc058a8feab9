import uuid

from sqlalchemy import Column, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class InventoryItem(Base):
    __tablename__ = "inventory"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    name = Column(String, nullable=False, index=True)
    sku = Column(String, nullable=True, unique=True)
    category = Column(String, nullable=True, index=True)
    description = Column(Text, nullable=True)
    low_stock_threshold = Column(Integer, nullable=True)

    stock = Column(Integer, nullable=False, default=0)
    # Bumped on every write; clients may send it back as expected_revision
    revision = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    stock_locations = relationship(
        "InventoryStockLocation",
        back_populates="inventory_item",
        cascade="all, delete-orphan",
        order_by="InventoryStockLocation.position",
        lazy="selectin",
    )

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "description": self.description,
            "low_stock_threshold": self.low_stock_threshold,
            "stock": self.stock,
            "revision": self.revision,
            "stock_locations": [loc.to_schema for loc in self.stock_locations],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
